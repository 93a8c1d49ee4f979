import errno

import pydantic
import pytest

from codebridge.errors import (
    AlreadyExistsError,
    from_envelope,
    InternalError,
    NotFoundError,
    OperationError,
    PermissionDeniedError,
    RemoteOSError,
    SpawnError,
    to_envelope,
    TransportError,
    UnknownOperationError,
    validation_error,
    ValidationError,
)
from codebridge.schema import ErrorEnvelope
from codebridge.schema.fs import MkdirInput


@pytest.mark.parametrize(
    "exc,kind,code",
    [
        (FileNotFoundError(errno.ENOENT, "missing"), "NotFoundError", "ENOENT"),
        (PermissionError(errno.EPERM, "nope"), "PermissionError", "EPERM"),
        (FileExistsError(errno.EEXIST, "exists"), "AlreadyExistsError", "EEXIST"),
        (IsADirectoryError(errno.EISDIR, "dir"), "OSError", "EISDIR"),
        (OSError("no errno"), "OSError", None),
    ],
)
def test_os_error_envelopes(exc, kind, code):
    envelope = to_envelope(exc)

    assert envelope.kind == kind
    assert envelope.code == code
    assert envelope.error == str(exc)


def test_other_exceptions_are_internal():
    envelope = to_envelope(KeyError("x"))

    assert envelope.kind == "InternalError"
    assert envelope.error == "'x'"

    assert to_envelope(RuntimeError()).error == "RuntimeError"


def test_operation_error_keeps_envelope():
    exc = SpawnError("failed to spawn foo")

    assert to_envelope(exc) is exc.envelope
    assert exc.envelope.kind == "SpawnError"


@pytest.mark.parametrize(
    "kind,cls,builtin",
    [
        ("ValidationError", ValidationError, ValueError),
        ("NotFoundError", NotFoundError, FileNotFoundError),
        ("PermissionError", PermissionDeniedError, PermissionError),
        ("AlreadyExistsError", AlreadyExistsError, FileExistsError),
        ("SpawnError", SpawnError, OSError),
        ("OSError", RemoteOSError, OSError),
        ("UnknownOperationError", UnknownOperationError, AttributeError),
        ("InternalError", InternalError, OperationError),
    ],
)
def test_from_envelope(kind, cls, builtin):
    envelope = ErrorEnvelope(error="something went wrong", kind=kind)

    exc = from_envelope(envelope)

    assert type(exc) is cls
    assert isinstance(exc, builtin)
    assert str(exc) == "something went wrong"
    assert exc.envelope == envelope


def test_from_envelope_unknown_kind():
    exc = from_envelope(ErrorEnvelope(error="new failure", kind="FutureError"))

    assert type(exc) is OperationError
    assert exc.envelope.kind == "FutureError"


def test_transport_error_is_not_operation_error():
    assert not issubclass(TransportError, OperationError)
    assert issubclass(TransportError, ConnectionError)


def test_validation_error_issues():
    with pytest.raises(pydantic.ValidationError) as e:
        MkdirInput.model_validate({"path": 1, "options": {"mode": -1}})

    exc = validation_error(e.value, "fs.mkdir")

    assert exc.envelope.kind == "ValidationError"
    assert {issue.path for issue in exc.issues} == {"path", "options.mode"}
    assert str(exc).startswith("invalid input for fs.mkdir: ")
    assert "(and 1 more)" in str(exc)
