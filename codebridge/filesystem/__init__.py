"""
Modules that expose the local file system as remote operations.

The service works on paths and whole files rather than file handles, so that every call
is self-contained and a client never leaves state behind on the server. File contents
travel either as text in a requested encoding or as base64 encoded bytes, which makes
binary files survive the trip unchanged.

The client module offers the same operations with plain Python arguments and return
values (bytes and str instead of content objects) on top of the generated stubs.
"""

from .client import FileSystemClient
from .service import FileSystemService

__all__ = [
    "FileSystemClient",
    "FileSystemService",
]
