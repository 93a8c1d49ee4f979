from unittest import mock

import pytest

from codebridge.config import ProcessConfig
from codebridge.router import build_dispatcher
from codebridge.schema import CATALOG, Contract, QUERY
from codebridge.schema.fs import ExistsInput


def test_every_operation_is_bound():
    dispatcher = build_dispatcher()

    assert set(dispatcher.operations) == {c.name for c in CATALOG}


def test_missing_implementation():
    extra = Contract("fs.chmod", QUERY, ExistsInput, bool)

    with mock.patch("codebridge.router.CATALOG", CATALOG + (extra,)):
        with pytest.raises(KeyError):
            build_dispatcher()


def test_configured_shell():
    dispatcher = build_dispatcher(ProcessConfig(shell="/nonexistent/shell"))

    reply = dispatcher.dispatch("process.exec", {"command": "true"})

    assert reply["error"]["kind"] == "SpawnError"


def test_guards_are_applied(tmp_path):
    def read_only(operation, request):
        if operation.kind.value == "mutation":
            raise PermissionError(1, "Operation not permitted")

    dispatcher = build_dispatcher(guards=[read_only])

    reply = dispatcher.dispatch("fs.mkdir", {"path": str(tmp_path / "dir")})

    assert reply["error"]["kind"] == "PermissionError"
    assert not (tmp_path / "dir").exists()

    reply = dispatcher.dispatch("fs.exists", {"path": str(tmp_path)})

    assert reply == {"result": True}


@pytest.mark.parametrize("operation", ["process.spawn", "process.exec"])
def test_non_finite_timeout_starts_nothing(tmp_path, operation):
    marker = tmp_path / "marker"
    dispatcher = build_dispatcher()

    reply = dispatcher.dispatch(
        operation,
        {"command": ["touch", str(marker)], "options": {"timeout": float("nan")}},
    )

    assert reply["error"]["kind"] == "ValidationError"
    assert not marker.exists()
    dispatcher.close()
