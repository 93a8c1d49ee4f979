"""
Declarative contracts of all remote operations.

Every operation has a stable dotted name, a pydantic input model, an output type and a
kind that tells the transport whether it is a query (no side effects, may be batched)
or a mutation (side effects, never batched or retried). The CATALOG below is the single
source of truth for both the server side dispatcher and the generated client stubs.
"""

from typing import Tuple

from . import fs, process
from .common import (
    BridgeModel,
    BufferContent,
    Contract,
    ENCODINGS,
    ErrorEnvelope,
    FileContent,
    FLAGS,
    Issue,
    OperationKind,
    TextContent,
)

QUERY = OperationKind.QUERY
MUTATION = OperationKind.MUTATION

CATALOG: Tuple[Contract, ...] = (
    Contract(
        "fs.exists",
        QUERY,
        fs.ExistsInput,
        fs.ExistsOutput,
        "Check whether a path exists",
    ),
    Contract(
        "fs.mkdir",
        MUTATION,
        fs.MkdirInput,
        fs.MkdirOutput,
        "Create a directory",
    ),
    Contract(
        "fs.readdir",
        QUERY,
        fs.ReaddirInput,
        fs.ReaddirOutput,
        "List the entries of a directory",
    ),
    Contract(
        "fs.readFile",
        QUERY,
        fs.ReadFileInput,
        fs.ReadFileOutput,
        "Read the contents of a file",
    ),
    Contract(
        "fs.stat",
        QUERY,
        fs.StatInput,
        fs.Stat,
        "Retrieve the metadata of a path",
    ),
    Contract(
        "fs.writeFile",
        MUTATION,
        fs.WriteFileInput,
        fs.WriteFileOutput,
        "Create or overwrite a file",
    ),
    Contract(
        "fs.fileSize",
        QUERY,
        fs.FileSizeInput,
        fs.FileSizeOutput,
        "Retrieve the size of a file in bytes",
    ),
    Contract(
        "fs.delete",
        MUTATION,
        fs.DeleteInput,
        fs.DeleteOutput,
        "Delete a file or directory",
    ),
    Contract(
        "process.spawn",
        MUTATION,
        process.SpawnInput,
        process.ProcessResult,
        "Run an executable with arguments and capture its output",
    ),
    Contract(
        "process.exec",
        MUTATION,
        process.ExecInput,
        process.ProcessResult,
        "Run a shell command and capture its output",
    ),
)


def contract(name: str) -> Contract:
    """Look up the contract of an operation by name."""
    for candidate in CATALOG:
        if candidate.name == name:
            return candidate

    raise KeyError(name)


__all__ = [
    "BridgeModel",
    "BufferContent",
    "CATALOG",
    "Contract",
    "contract",
    "ENCODINGS",
    "ErrorEnvelope",
    "FileContent",
    "FLAGS",
    "fs",
    "Issue",
    "MUTATION",
    "OperationKind",
    "process",
    "QUERY",
    "TextContent",
]
