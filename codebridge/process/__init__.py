"""
Modules that run processes on the server on behalf of remote callers.

A process is either spawned directly from an argument list or executed as a command line
by the shell. In both cases the call returns once the process has finished, with its
captured output and exit status.
"""

from .client import ProcessClient
from .service import ProcessService

__all__ = [
    "ProcessClient",
    "ProcessService",
]
