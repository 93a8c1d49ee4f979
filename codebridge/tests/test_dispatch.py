import logging
from unittest import mock

from pydantic import StrictStr
import pytest

from codebridge.dispatch import Dispatcher, error_reply, Operation
from codebridge.errors import ValidationError
from codebridge.schema import BridgeModel, Contract, MUTATION, QUERY


class NameInput(BridgeModel):
    name: StrictStr


def greet(request):
    return f"hello {request.name}"


class WriteInput(BridgeModel):
    path: StrictStr
    data: StrictStr


GREET = Contract("test.greet", QUERY, NameInput, str)
FORGET = Contract("test.forget", MUTATION, NameInput, type(None))
WRITE = Contract("test.write", MUTATION, WriteInput, type(None))


def test_dispatch_result():
    dispatcher = Dispatcher([Operation(GREET, greet)])

    assert dispatcher.dispatch("test.greet", {"name": "bob"}) == {
        "result": "hello bob"
    }


def test_dispatch_unknown_operation():
    dispatcher = Dispatcher([Operation(GREET, greet)])

    reply = dispatcher.dispatch("test.nope", {})

    assert reply["error"]["kind"] == "UnknownOperationError"
    assert "test.nope" in reply["error"]["error"]


def test_dispatch_non_string_name():
    dispatcher = Dispatcher([Operation(GREET, greet)])

    assert dispatcher.dispatch(None, {})["error"]["kind"] == "UnknownOperationError"
    assert dispatcher.dispatch(["x"], {})["error"]["kind"] == "UnknownOperationError"


def test_validation_happens_before_handler():
    handler = mock.Mock()
    dispatcher = Dispatcher([Operation(FORGET, handler)])

    reply = dispatcher.dispatch("test.forget", {"name": 5})

    assert reply["error"]["kind"] == "ValidationError"
    assert reply["error"]["issues"][0]["path"] == "name"
    assert not handler.called


def test_unknown_fields_rejected():
    handler = mock.Mock()
    dispatcher = Dispatcher([Operation(FORGET, handler)])

    reply = dispatcher.dispatch("test.forget", {"name": "x", "extra": True})

    assert reply["error"]["kind"] == "ValidationError"
    assert not handler.called


def test_handler_called_exactly_once():
    handler = mock.Mock(side_effect=OSError("flaky"))
    dispatcher = Dispatcher([Operation(FORGET, handler)])

    reply = dispatcher.dispatch("test.forget", {"name": "x"})

    assert reply["error"]["kind"] == "OSError"
    assert handler.call_count == 1


def test_unexpected_exception_becomes_internal_error(caplog):
    def crash(request):
        raise RuntimeError("boom")

    dispatcher = Dispatcher([Operation(GREET, crash)])

    reply = dispatcher.dispatch("test.greet", {"name": "x"})

    assert reply == {"error": {"error": "boom", "kind": "InternalError"}}
    assert "boom" in caplog.text


def test_output_is_serialized_through_contract():
    class Point(BridgeModel):
        x_pos: int

    contract = Contract("test.point", QUERY, NameInput, Point)
    dispatcher = Dispatcher([Operation(contract, lambda r: Point(x_pos=1))])

    assert dispatcher.dispatch("test.point", {"name": "x"}) == {"result": {"xPos": 1}}


def test_guards():
    def deny(operation, request):
        if request.name == "mallory":
            raise PermissionError(13, "Permission denied")

    handler = mock.Mock(return_value="ok")
    dispatcher = Dispatcher([Operation(GREET, handler)], guards=[deny])

    assert dispatcher.dispatch("test.greet", {"name": "alice"}) == {"result": "ok"}

    reply = dispatcher.dispatch("test.greet", {"name": "mallory"})

    assert reply["error"]["kind"] == "PermissionError"
    assert reply["error"]["code"] == "EACCES"
    assert handler.call_count == 1


def test_duplicate_operations():
    with pytest.raises(ValueError):
        Dispatcher([Operation(GREET, greet), Operation(GREET, greet)])


def test_operations_are_read_only():
    dispatcher = Dispatcher([Operation(GREET, greet)])

    with pytest.raises(TypeError):
        dispatcher.operations["test.other"] = Operation(GREET, greet)

    assert list(dispatcher.operations) == ["test.greet"]


def test_describe():
    dispatcher = Dispatcher([Operation(GREET, greet), Operation(FORGET, greet)])

    description = dispatcher.describe()

    assert description["protocol"]
    assert description["operations"] == {
        "test.greet": "query",
        "test.forget": "mutation",
    }


def test_batch():
    handler = mock.Mock()
    dispatcher = Dispatcher([Operation(GREET, greet), Operation(FORGET, handler)])

    replies = dispatcher.dispatch_batch(
        [
            {"operationName": "test.greet", "input": {"name": "a"}},
            {"operationName": "test.forget", "input": {"name": "b"}},
            "garbage",
            {"operationName": "test.greet", "input": {}},
        ]
    )

    assert replies[0] == {"result": "hello a"}
    assert replies[1]["error"]["kind"] == "ValidationError"
    assert replies[2]["error"]["kind"] == "ValidationError"
    assert replies[3]["error"]["kind"] == "ValidationError"
    assert not handler.called


def test_batch_must_be_list():
    dispatcher = Dispatcher([Operation(GREET, greet)])

    with pytest.raises(ValidationError):
        dispatcher.dispatch_batch({"operationName": "test.greet"})


def test_request_logging(caplog):
    caplog.set_level(logging.INFO, logger="codebridge")

    dispatcher = Dispatcher([Operation(GREET, greet)])
    dispatcher.dispatch("test.greet", {"name": "bob"})

    assert "query test.greet" in caplog.text
    assert "'name': 'bob'" not in caplog.text


def test_request_logging_shows_target(caplog):
    caplog.set_level(logging.INFO, logger="codebridge")

    dispatcher = Dispatcher([Operation(WRITE, lambda request: None)])
    dispatcher.dispatch("test.write", {"path": "/tmp/file", "data": "x" * 100000})

    assert "mutation test.write /tmp/file" in caplog.text
    assert "x" * 100 not in caplog.text


def test_request_logging_debug_shows_input(caplog):
    caplog.set_level(logging.DEBUG, logger="codebridge")

    dispatcher = Dispatcher([Operation(GREET, greet)])
    dispatcher.dispatch("test.greet", {"name": "bob"})

    assert "test.greet input: {'name': 'bob'}" in caplog.text


def test_close_runs_cleanups(caplog):
    first = mock.Mock(side_effect=RuntimeError("cleanup broke"))
    second = mock.Mock()

    dispatcher = Dispatcher([], cleanups=[first, second])
    dispatcher.close()

    assert first.called
    assert second.called
    assert "cleanup broke" in caplog.text


def test_error_reply_omits_empty_fields():
    assert error_reply(ValueError("bad")) == {
        "error": {"error": "bad", "kind": "InternalError"}
    }
