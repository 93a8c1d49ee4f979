"""Building blocks shared by all operation contracts."""

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Type, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    TypeAdapter,
)
from pydantic.alias_generators import to_camel


class BridgeModel(BaseModel):
    """
    Base class of every value that crosses the wire.

    Fields are declared in snake_case and travel in camelCase (with_file_types is
    sent as withFileTypes). Unknown fields are rejected rather than dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class OperationKind(Enum):
    """Whether an operation only reads (query) or has side effects (mutation)."""

    QUERY = "query"
    MUTATION = "mutation"


@dataclass(frozen=True, eq=False)
class Contract:
    """Name, kind and input/output shapes of a single remote operation."""

    name: str
    kind: OperationKind
    input_type: Type[BridgeModel]
    output_type: Any
    description: str = ""

    _output_adapter: TypeAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_output_adapter", TypeAdapter(self.output_type))

    @property
    def namespace(self) -> str:
        return self.name.rpartition(".")[0]

    @property
    def procedure(self) -> str:
        return self.name.rpartition(".")[2]

    def dump_output(self, value: Any) -> Any:
        """Turn an operation result into its JSON compatible wire form."""
        return self._output_adapter.dump_python(value, mode="json", by_alias=True)

    def load_output(self, value: Any) -> Any:
        """Parse the wire form of a result back into models."""
        return self._output_adapter.validate_python(value)


#
# Closed value sets
#

# Character encodings accepted wherever an encoding option appears, mapped to the
# Python codec that implements them. None marks the binary-to-text encodings.
ENCODINGS: Dict[str, Optional[str]] = {
    "utf8": "utf-8",
    "utf-8": "utf-8",
    "utf16le": "utf-16-le",
    "utf-16le": "utf-16-le",
    "ucs2": "utf-16-le",
    "ucs-2": "utf-16-le",
    "latin1": "latin-1",
    "binary": "latin-1",
    "ascii": "ascii",
    "base64": None,
    "base64url": None,
    "hex": None,
}

# File open flags, mapped to the names of the os.O_* constants they combine.
FLAGS: Dict[str, Tuple[str, ...]] = {
    "r": ("O_RDONLY",),
    "rs": ("O_RDONLY", "O_SYNC"),
    "sr": ("O_RDONLY", "O_SYNC"),
    "r+": ("O_RDWR",),
    "rs+": ("O_RDWR", "O_SYNC"),
    "sr+": ("O_RDWR", "O_SYNC"),
    "w": ("O_TRUNC", "O_CREAT", "O_WRONLY"),
    "wx": ("O_TRUNC", "O_CREAT", "O_WRONLY", "O_EXCL"),
    "xw": ("O_TRUNC", "O_CREAT", "O_WRONLY", "O_EXCL"),
    "w+": ("O_TRUNC", "O_CREAT", "O_RDWR"),
    "wx+": ("O_TRUNC", "O_CREAT", "O_RDWR", "O_EXCL"),
    "xw+": ("O_TRUNC", "O_CREAT", "O_RDWR", "O_EXCL"),
    "a": ("O_APPEND", "O_CREAT", "O_WRONLY"),
    "ax": ("O_APPEND", "O_CREAT", "O_WRONLY", "O_EXCL"),
    "xa": ("O_APPEND", "O_CREAT", "O_WRONLY", "O_EXCL"),
    "as": ("O_APPEND", "O_CREAT", "O_WRONLY", "O_SYNC"),
    "sa": ("O_APPEND", "O_CREAT", "O_WRONLY", "O_SYNC"),
    "a+": ("O_APPEND", "O_CREAT", "O_RDWR"),
    "ax+": ("O_APPEND", "O_CREAT", "O_RDWR", "O_EXCL"),
    "xa+": ("O_APPEND", "O_CREAT", "O_RDWR", "O_EXCL"),
    "as+": ("O_APPEND", "O_CREAT", "O_RDWR", "O_SYNC"),
    "sa+": ("O_APPEND", "O_CREAT", "O_RDWR", "O_SYNC"),
}


def _check_encoding(value: str) -> str:
    normalized = value.lower()

    if normalized not in ENCODINGS:
        raise ValueError(f"unknown encoding '{value}'")

    return normalized


def _check_flag(value: str) -> str:
    if value not in FLAGS:
        raise ValueError(f"unknown file flag '{value}'")

    return value


def _check_path(value: str) -> str:
    if "\x00" in value:
        raise ValueError("path must not contain null bytes")

    return value


Path = Annotated[StrictStr, AfterValidator(_check_path)]
Encoding = Annotated[StrictStr, AfterValidator(_check_encoding)]
Flag = Annotated[StrictStr, AfterValidator(_check_flag)]
Mode = Annotated[StrictInt, Field(ge=0, le=0o7777)]


def encoding_shorthand(value: Any) -> Any:
    """Expand an options value given as a bare encoding name into an object."""
    if isinstance(value, str):
        return {"encoding": value}

    return value


def text_shorthand(value: Any) -> Any:
    """Expand file contents given as a bare string into text contents."""
    if isinstance(value, str):
        return {"type": "string", "data": value}

    return value


#
# File contents
#


class TextContent(BridgeModel):
    """File contents as text."""

    type: Literal["string"] = "string"
    data: StrictStr


def _check_base64(value: str) -> str:
    try:
        base64.b64decode(value, validate=True)
    except binascii.Error:
        raise ValueError("data is not valid base64")

    return value


class BufferContent(BridgeModel):
    """Binary file contents, base64 encoded."""

    type: Literal["Buffer"] = "Buffer"
    data: Annotated[StrictStr, AfterValidator(_check_base64)]

    @staticmethod
    def from_bytes(data: bytes) -> "BufferContent":
        """Wrap raw bytes."""
        return BufferContent(data=base64.b64encode(data).decode("ascii"))

    def to_bytes(self) -> bytes:
        """Retrieve the exact original bytes."""
        return base64.b64decode(self.data)


FileContent = Annotated[Union[TextContent, BufferContent], Field(discriminator="type")]


#
# Errors
#


class Issue(BridgeModel):
    """A single reason why an input was rejected."""

    path: StrictStr = Field(description="Dotted location of the offending field")
    reason: StrictStr


class ErrorEnvelope(BridgeModel):
    """Wire representation of a failed call."""

    error: StrictStr = Field(description="Human readable error message")
    kind: StrictStr = Field(default="InternalError", description="Error taxonomy kind")
    code: Optional[StrictStr] = Field(default=None, description="errno symbol")
    issues: Optional[List[Issue]] = None
