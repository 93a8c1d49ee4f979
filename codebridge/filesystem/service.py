"""Module that exposes local file system calls as remote operations."""

import errno
import os
import os.path
import shutil
import stat
from typing import List, Optional, Union

from codebridge.errors import ValidationError
from codebridge.filesystem.common import decode, encode, open_flags, stat_to_wire
from codebridge.logger import log
from codebridge.schema import BufferContent, FileContent, TextContent
from codebridge.schema.fs import (
    DeleteInput,
    DeleteOptions,
    Dirent,
    ExistsInput,
    FileSizeInput,
    MkdirInput,
    MkdirOptions,
    ReaddirInput,
    ReaddirOptions,
    ReadFileInput,
    ReadFileOptions,
    Stat,
    StatInput,
    SuccessOutput,
    WriteFileInput,
    WriteFileOptions,
)

# Size of the reads used to load a file into memory
READ_CHUNK_SIZE = 1024 * 1024


class FileSystemService:
    """Operations on the local file system, each taking its validated input model."""

    #
    # Metadata access
    #

    @staticmethod
    def exists(request: ExistsInput) -> bool:
        try:
            os.stat(request.path)
        except OSError as e:
            log.debug(f"treating {request.path} as nonexistent: {e}")
            return False

        return True

    @staticmethod
    def stat(request: StatInput) -> Stat:
        # throwIfNoEntry and bigint are accepted for compatibility only
        return stat_to_wire(os.stat(request.path))

    @staticmethod
    def file_size(request: FileSizeInput) -> int:
        return os.stat(request.path).st_size

    @staticmethod
    def readdir(request: ReaddirInput) -> Union[List[str], List[Dirent]]:
        """
        List the entries of a directory in the order the operating system returns them.

        Names are listed as bytes and decoded afterwards so that names that are not
        valid in the requested encoding are still returned (with replacement
        characters) instead of failing the whole listing. Entry types describe the
        entry itself, so a symlink to a directory is a symbolic link and not a
        directory.
        """
        options = request.options or ReaddirOptions()
        encoding = options.encoding or "utf8"
        path = os.fsencode(request.path)

        if not options.with_file_types:
            return [decode(name, encoding) for name in os.listdir(path)]

        with os.scandir(path) as entries:
            return [
                Dirent(
                    name=decode(entry.name, encoding),
                    is_file=entry.is_file(follow_symlinks=False),
                    is_directory=entry.is_dir(follow_symlinks=False),
                    is_symbolic_link=entry.is_symlink(),
                )
                for entry in entries
            ]

    #
    # File contents
    #

    @staticmethod
    def read_file(request: ReadFileInput) -> FileContent:
        options = request.options or ReadFileOptions()

        fd = os.open(request.path, open_flags(options.flag or "r"))

        try:
            chunks = []

            while True:
                chunk = os.read(fd, READ_CHUNK_SIZE)

                if not chunk:
                    break

                chunks.append(chunk)
        finally:
            os.close(fd)

        data = b"".join(chunks)

        if options.encoding is None:
            return BufferContent.from_bytes(data)
        else:
            return TextContent(data=decode(data, options.encoding))

    @staticmethod
    def write_file(request: WriteFileInput) -> SuccessOutput:
        options = request.options or WriteFileOptions()
        mode = 0o666 if options.mode is None else options.mode

        if isinstance(request.data, BufferContent):
            data = request.data.to_bytes()
        else:
            try:
                data = encode(request.data.data, options.encoding or "utf8")
            except ValueError as e:
                raise ValidationError(str(e)) from None

        fd = os.open(request.path, open_flags(options.flag or "w"), mode)

        try:
            view = memoryview(data)

            while view:
                written = os.write(fd, view)
                view = view[written:]
        finally:
            os.close(fd)

        return SuccessOutput()

    #
    # File system structure
    #

    @staticmethod
    def mkdir(request: MkdirInput) -> Optional[str]:
        """
        Create a directory.

        A recursive mkdir succeeds if the directory already exists and returns the
        absolute path of the first directory that had to be created, or None if there
        was none. A non-recursive mkdir always returns None.
        """
        options = request.options or MkdirOptions()
        mode = 0o777 if options.mode is None else options.mode

        if not options.recursive:
            os.mkdir(request.path, mode)
            return None

        path = os.path.abspath(request.path)

        # Find the outermost missing directory
        first_created = None
        candidate = path

        while not os.path.lexists(candidate):
            first_created = candidate
            parent = os.path.dirname(candidate)

            if parent == candidate:
                break

            candidate = parent

        os.makedirs(path, mode, exist_ok=True)

        return first_created

    @staticmethod
    def delete(request: DeleteInput) -> SuccessOutput:
        """
        Delete a file, symlink or directory.

        Directories are only deleted together with their contents if recursive is set.
        Symlinks are deleted themselves and never followed. With force a missing path
        is not an error, but every other failure still is.
        """
        options = request.options or DeleteOptions()

        try:
            st = os.lstat(request.path)

            if stat.S_ISDIR(st.st_mode):
                if not options.recursive:
                    raise IsADirectoryError(
                        errno.EISDIR, os.strerror(errno.EISDIR), request.path
                    )

                shutil.rmtree(request.path)
            else:
                os.unlink(request.path)
        except FileNotFoundError:
            if not options.force:
                raise

        return SuccessOutput()
