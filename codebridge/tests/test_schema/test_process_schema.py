import pydantic
import pytest

from codebridge.schema.process import ExecInput, ProcessResult, SpawnInput


def test_spawn_command():
    request = SpawnInput.model_validate(
        {"command": ["echo", "hi"], "options": {"stdout": "pipe", "stderr": "ignore"}}
    )

    assert request.command == ["echo", "hi"]
    assert request.options.stderr == "ignore"


@pytest.mark.parametrize(
    "payload",
    [
        {"command": []},
        {"command": "echo hi"},
        {"command": ["echo", 1]},
        {"command": ["echo"], "options": {"stdin": "file"}},
        {"command": ["echo"], "options": {"env": {"A": 1}}},
        {"command": ["echo"], "options": {"timeout": 0}},
        {"command": ["echo"], "options": {"timeout": "5"}},
        {"command": ["echo"], "options": {"shell": True}},
    ],
)
def test_invalid_spawn_inputs(payload):
    with pytest.raises(pydantic.ValidationError):
        SpawnInput.model_validate(payload)


def test_exec_command_forms():
    assert ExecInput.model_validate({"command": "ls | wc -l"}).command == "ls | wc -l"
    assert ExecInput.model_validate({"command": ["ls", "-l"]}).command == ["ls", "-l"]

    with pytest.raises(pydantic.ValidationError):
        ExecInput.model_validate({"command": []})


def test_exec_options():
    request = ExecInput.model_validate(
        {"command": "true", "options": {"shell": False, "cwd": "/", "timeout": 1.5}}
    )

    assert request.options.shell is False
    assert request.options.timeout == 1.5


def test_process_result_wire_form():
    result = ProcessResult(stdout="a", stderr="", exit_code=0, success=True)

    assert result.model_dump(by_alias=True) == {
        "stdout": "a",
        "stderr": "",
        "exitCode": 0,
        "success": True,
    }


def test_process_result_killed():
    result = ProcessResult.model_validate(
        {"stdout": "", "stderr": "", "exitCode": None, "success": False}
    )

    assert result.exit_code is None


def test_process_result_success_must_match_exit_code():
    with pytest.raises(pydantic.ValidationError):
        ProcessResult(stdout="", stderr="", exit_code=1, success=True)

    with pytest.raises(pydantic.ValidationError):
        ProcessResult(stdout="", stderr="", exit_code=None, success=True)

    with pytest.raises(pydantic.ValidationError):
        ProcessResult(stdout="", stderr="", exit_code=0, success=False)


def test_process_result_exit_code_required():
    with pytest.raises(pydantic.ValidationError):
        ProcessResult.model_validate({"stdout": "", "stderr": "", "success": False})


@pytest.mark.parametrize("timeout", [float("nan"), float("inf"), float("-inf")])
def test_timeout_must_be_finite(timeout):
    with pytest.raises(pydantic.ValidationError):
        SpawnInput.model_validate(
            {"command": ["true"], "options": {"timeout": timeout}}
        )

    with pytest.raises(pydantic.ValidationError):
        ExecInput.model_validate({"command": "true", "options": {"timeout": timeout}})
