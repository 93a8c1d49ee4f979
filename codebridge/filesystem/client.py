"""Module that contains the file system client that forwards all calls to the stubs."""

from typing import List, Optional, Union

from codebridge.schema import BufferContent, TextContent
from codebridge.schema.fs import Dirent, Stat
from codebridge.stubs import StubNamespace


class FileSystemClient:
    """
    Remote file system with plain Python arguments and return values.

    File contents are bytes or str instead of content objects. Failures raise the
    OperationError subclasses, which also derive from the builtin exceptions, so a
    missing file raises FileNotFoundError just like it would locally.
    """

    def __init__(self, stubs: StubNamespace):
        """Instantiate file system with the generated stubs."""
        self._fs = stubs.fs

    #
    # Metadata access
    #

    def exists(self, path: str) -> bool:
        return self._fs.exists(path=path)

    def stat(self, path: str) -> Stat:
        return self._fs.stat(path=path)

    def file_size(self, path: str) -> int:
        return self._fs.fileSize(path=path)

    def readdir(
        self, path: str, encoding: Optional[str] = None, with_file_types: bool = False
    ) -> Union[List[str], List[Dirent]]:
        return self._fs.readdir(
            path=path,
            options={"encoding": encoding, "with_file_types": with_file_types},
        )

    #
    # File contents
    #

    def read_file(
        self, path: str, encoding: Optional[str] = None, flag: Optional[str] = None
    ) -> Union[bytes, str]:
        """Read a whole file, as bytes or as text if an encoding is specified."""
        content = self._fs.readFile(
            path=path, options={"encoding": encoding, "flag": flag}
        )

        if isinstance(content, BufferContent):
            return content.to_bytes()
        else:
            return content.data

    def write_file(
        self,
        path: str,
        data: Union[bytes, str],
        encoding: Optional[str] = None,
        mode: Optional[int] = None,
        flag: Optional[str] = None,
    ) -> None:
        """Create or overwrite a file with bytes, or with text in the given encoding."""
        if isinstance(data, (bytes, bytearray)):
            content = BufferContent.from_bytes(bytes(data))
        else:
            content = TextContent(data=data)

        self._fs.writeFile(
            path=path,
            data=content.model_dump(),
            options={"encoding": encoding, "mode": mode, "flag": flag},
        )

    #
    # File system structure
    #

    def mkdir(
        self, path: str, recursive: bool = False, mode: Optional[int] = None
    ) -> Optional[str]:
        return self._fs.mkdir(path=path, options={"recursive": recursive, "mode": mode})

    def delete(self, path: str, recursive: bool = False, force: bool = False) -> None:
        self._fs.delete(path=path, options={"recursive": recursive, "force": force})
