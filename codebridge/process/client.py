"""Module that contains the process client that forwards all calls to the stubs."""

from typing import Dict, List, Optional, Union

from codebridge.schema.process import ProcessResult
from codebridge.stubs import StubNamespace


class ProcessClient:
    """Runs processes on the server and returns their captured output."""

    def __init__(self, stubs: StubNamespace):
        """Instantiate with the generated stubs."""
        self._process = stubs.process

    def spawn(
        self,
        command: List[str],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        stdin: Optional[str] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Run an executable with arguments, without a shell."""
        return self._process.spawn(
            command=command,
            options={
                "cwd": cwd,
                "env": env,
                "stdin": stdin,
                "stdout": stdout,
                "stderr": stderr,
                "timeout": timeout,
            },
        )

    def exec(
        self,
        command: Union[str, List[str]],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        shell: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Run a command line through the shell."""
        return self._process.exec(
            command=command,
            options={"cwd": cwd, "env": env, "shell": shell, "timeout": timeout},
        )
