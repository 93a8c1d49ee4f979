"""
Error taxonomy shared by the server and the client.

Operations raise ordinary OSErrors and the dispatcher is the single place that turns
any exception into an ErrorEnvelope. The client turns the envelope back into one of the
OperationError subclasses below. Each of these also derives from the builtin exception
that describes the same condition, so that callers can keep writing
`except FileNotFoundError` just like they would for local file access.

TransportError is not an OperationError: it means that no envelope was
received at all.
"""

import errno
from typing import Dict, List, Optional, Tuple, Type

import pydantic

from codebridge.schema import ErrorEnvelope, Issue


class BridgeError(Exception):
    """Base class of all codebridge errors."""

    kind = "InternalError"


class OperationError(BridgeError):
    """An operation failed, the details are described by an error envelope."""

    def __init__(self, message: str, envelope: Optional[ErrorEnvelope] = None):
        """Instantiate with a message and optionally the envelope it came from."""
        super().__init__(message)

        self.message = message
        self.envelope = envelope or ErrorEnvelope(error=message, kind=self.kind)

    def __str__(self) -> str:
        return self.message


class ValidationError(OperationError, ValueError):
    """The input of a call did not satisfy the operation's contract."""

    kind = "ValidationError"

    @property
    def issues(self) -> List[Issue]:
        return self.envelope.issues or []


class NotFoundError(OperationError, FileNotFoundError):
    kind = "NotFoundError"


class PermissionDeniedError(OperationError, PermissionError):
    kind = "PermissionError"


class AlreadyExistsError(OperationError, FileExistsError):
    kind = "AlreadyExistsError"


class SpawnError(OperationError, OSError):
    """A process could not be started, so there is no process result."""

    kind = "SpawnError"


class RemoteOSError(OperationError, OSError):
    kind = "OSError"


class UnknownOperationError(OperationError, AttributeError):
    kind = "UnknownOperationError"


class InternalError(OperationError):
    kind = "InternalError"


class TransportError(BridgeError, ConnectionError):
    """The call could not be completed (timeout, unreachable or confused server)."""

    kind = "TransportError"


_OPERATION_ERRORS: Dict[str, Type[OperationError]] = {
    cls.kind: cls
    for cls in (
        ValidationError,
        NotFoundError,
        PermissionDeniedError,
        AlreadyExistsError,
        SpawnError,
        RemoteOSError,
        UnknownOperationError,
        InternalError,
    )
}

# More specific classes must come first.
_OS_ERROR_KINDS: List[Tuple[Type[OSError], str]] = [
    (FileNotFoundError, NotFoundError.kind),
    (PermissionError, PermissionDeniedError.kind),
    (FileExistsError, AlreadyExistsError.kind),
    (OSError, RemoteOSError.kind),
]


def validation_error(exc: pydantic.ValidationError, name: str) -> ValidationError:
    """Describe a pydantic validation failure of an operation's input."""
    issues = [
        Issue(
            path=".".join(str(part) for part in error["loc"]) or "(input)",
            reason=error["msg"],
        )
        for error in exc.errors()
    ]

    first = issues[0] if issues else Issue(path="(input)", reason="invalid input")
    message = f"invalid input for {name}: {first.path}: {first.reason}"

    if len(issues) > 1:
        message += f" (and {len(issues) - 1} more)"

    envelope = ErrorEnvelope(
        error=message, kind=ValidationError.kind, issues=issues or None
    )

    return ValidationError(message, envelope)


def to_envelope(exc: BaseException) -> ErrorEnvelope:
    """Describe any exception as an error envelope."""
    if isinstance(exc, OperationError):
        return exc.envelope

    if isinstance(exc, OSError):
        code = errno.errorcode.get(exc.errno) if exc.errno else None

        for exc_type, kind in _OS_ERROR_KINDS:
            if isinstance(exc, exc_type):
                return ErrorEnvelope(error=str(exc), kind=kind, code=code)

    return ErrorEnvelope(
        error=str(exc) or exc.__class__.__name__, kind=InternalError.kind
    )


def from_envelope(envelope: ErrorEnvelope) -> OperationError:
    """Reconstruct the exception described by an error envelope."""
    cls = _OPERATION_ERRORS.get(envelope.kind, OperationError)

    return cls(envelope.error, envelope)
