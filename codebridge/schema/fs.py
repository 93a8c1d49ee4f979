"""Input and output shapes of the file system operations."""

from typing import Annotated, Any, List, Optional, Union

from pydantic import (
    BeforeValidator,
    Field,
    model_validator,
    StrictBool,
    StrictInt,
    StrictStr,
)

from .common import (
    BridgeModel,
    Encoding,
    encoding_shorthand,
    FileContent,
    Flag,
    Mode,
    Path,
    text_shorthand,
)

#
# Inputs
#


class ExistsInput(BridgeModel):
    path: Path = Field(description="File or directory path to check for existence")


class MkdirOptions(BridgeModel):
    recursive: Optional[StrictBool] = Field(
        default=None, description="Create missing parent directories (default false)"
    )
    mode: Optional[Mode] = Field(
        default=None, description="Permission bits for the new directory"
    )


class MkdirInput(BridgeModel):
    path: Path = Field(description="Directory path to create")
    options: Optional[MkdirOptions] = None


class ReaddirOptions(BridgeModel):
    encoding: Optional[Encoding] = Field(
        default=None, description="Character encoding of the returned names"
    )
    with_file_types: Optional[StrictBool] = Field(
        default=None, description="Return entries with type information"
    )


class ReaddirInput(BridgeModel):
    path: Path = Field(description="Directory path to list")
    options: Annotated[
        Optional[ReaddirOptions], BeforeValidator(encoding_shorthand)
    ] = Field(default=None, description="Options object, or just an encoding name")


class ReadFileOptions(BridgeModel):
    encoding: Optional[Encoding] = Field(
        default=None, description="Decode contents as text, returns binary if omitted"
    )
    flag: Optional[Flag] = Field(default=None, description="Open flag (default 'r')")


class ReadFileInput(BridgeModel):
    path: Path = Field(description="Path of the file to read")
    options: Annotated[
        Optional[ReadFileOptions], BeforeValidator(encoding_shorthand)
    ] = Field(default=None, description="Options object, or just an encoding name")


class WriteFileOptions(BridgeModel):
    encoding: Optional[Encoding] = Field(
        default=None, description="Encoding of text data (default 'utf8')"
    )
    mode: Optional[Mode] = Field(
        default=None, description="Permission bits if the file is created"
    )
    flag: Optional[Flag] = Field(default=None, description="Open flag (default 'w')")


class WriteFileInput(BridgeModel):
    path: Path = Field(description="Path of the file to create or overwrite")
    data: FileContent = Field(description="Text, or base64 encoded binary contents")
    options: Annotated[
        Optional[WriteFileOptions], BeforeValidator(encoding_shorthand)
    ] = Field(default=None, description="Options object, or just an encoding name")

    @model_validator(mode="before")
    @classmethod
    def expand_text_data(cls, values: Any) -> Any:
        if isinstance(values, dict) and isinstance(values.get("data"), str):
            return {**values, "data": text_shorthand(values["data"])}

        return values


class StatOptions(BridgeModel):
    bigint: Optional[StrictBool] = Field(
        default=None, description="Accepted for compatibility, integers are unbounded"
    )
    throw_if_no_entry: Optional[StrictBool] = Field(
        default=None, description="Accepted but ignored, a missing path always fails"
    )


class StatInput(BridgeModel):
    path: Path = Field(description="Path to stat")
    options: Optional[StatOptions] = None


class FileSizeInput(BridgeModel):
    path: Path = Field(description="Path of the file")


class DeleteOptions(BridgeModel):
    recursive: Optional[StrictBool] = Field(
        default=None, description="Delete directories along with their contents"
    )
    force: Optional[StrictBool] = Field(
        default=None, description="Succeed if the path does not exist"
    )


class DeleteInput(BridgeModel):
    path: Path = Field(description="File or directory to delete")
    options: Optional[DeleteOptions] = None


#
# Outputs
#

ExistsOutput = bool

MkdirOutput = Optional[str]


class Dirent(BridgeModel):
    """Directory entry along with the type of the entry itself."""

    name: StrictStr
    is_file: StrictBool
    is_directory: StrictBool
    is_symbolic_link: StrictBool


ReaddirOutput = Union[List[str], List[Dirent]]

ReadFileOutput = FileContent


class Stat(BridgeModel):
    """File system metadata of a path."""

    dev: StrictInt
    ino: StrictInt
    mode: StrictInt
    nlink: StrictInt
    uid: StrictInt
    gid: StrictInt
    rdev: StrictInt
    size: StrictInt
    blksize: StrictInt
    blocks: StrictInt

    # Milliseconds since the epoch
    atime_ms: StrictInt
    mtime_ms: StrictInt
    ctime_ms: StrictInt
    birthtime_ms: StrictInt

    # The same instants as ISO-8601 strings
    atime: StrictStr
    mtime: StrictStr
    ctime: StrictStr
    birthtime: StrictStr

    is_file: StrictBool
    is_directory: StrictBool
    is_symbolic_link: StrictBool


class SuccessOutput(BridgeModel):
    success: StrictBool = True


WriteFileOutput = SuccessOutput

FileSizeOutput = int

DeleteOutput = SuccessOutput
