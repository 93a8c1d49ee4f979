"""Module that runs child processes on behalf of remote callers."""

import contextlib
import os
import shlex
import signal
import subprocess
import threading
from typing import Dict, List, Optional, Set, Union

from codebridge.errors import SpawnError, ValidationError
from codebridge.logger import log, summarize
from codebridge.schema.process import (
    ExecInput,
    ExecOptions,
    ProcessResult,
    SpawnInput,
    SpawnOptions,
    StdioMode,
)

_STDIO = {
    "pipe": subprocess.PIPE,
    "inherit": None,
    "ignore": subprocess.DEVNULL,
}


class ProcessService:
    """
    Service that runs commands to completion and captures their output.

    A process goes through the states created, running and then either exited with a
    code or killed by a signal. Calls block until the terminal state has been reached
    and both output pipes have been drained. Every child runs in its own session, so
    killing its process group also reaches any processes that it started itself (like
    the commands in a shell pipeline).
    """

    def __init__(self, shell: str = "/bin/sh"):
        """Instantiate the service with the shell used to run command lines."""
        self.shell = shell

        self._running: Set[subprocess.Popen] = set()
        self._running_lock = threading.Lock()
        self._closed = False

    def spawn(self, request: SpawnInput) -> ProcessResult:
        options = request.options or SpawnOptions()

        return self._run(
            list(request.command),
            cwd=options.cwd,
            env=options.env,
            stdin=options.stdin or "ignore",
            stdout=options.stdout or "pipe",
            stderr=options.stderr or "pipe",
            timeout=options.timeout,
        )

    def exec(self, request: ExecInput) -> ProcessResult:
        """
        Run a command line.

        By default the command is interpreted by the shell. An argument list is quoted
        and joined into a single command line first. With shell disabled, the command
        is run directly and a command line is split into arguments like a shell would.
        """
        options = request.options or ExecOptions()
        command = request.command

        if options.shell is False:
            if isinstance(command, str):
                try:
                    args = shlex.split(command)
                except ValueError as e:
                    raise ValidationError(f"cannot split command: {e}") from None
            else:
                args = list(command)

            if not args:
                raise SpawnError("failed to spawn: empty command")
        else:
            if not isinstance(command, str):
                command = " ".join(map(shlex.quote, command))

            args = [self.shell, "-c", command]

        return self._run(
            args,
            cwd=options.cwd,
            env=options.env,
            stdin="ignore",
            stdout="pipe",
            stderr="pipe",
            timeout=options.timeout,
        )

    def terminate_all(self) -> None:
        """Kill all children that are still running and refuse to start new ones."""
        with self._running_lock:
            self._closed = True
            running = list(self._running)

        if running:
            log.info(f"killing {len(running)} running process(es)")

        for proc in running:
            self._kill(proc)

    @property
    def running_count(self) -> int:
        with self._running_lock:
            return len(self._running)

    def _run(
        self,
        args: List[str],
        cwd: Optional[str],
        env: Optional[Dict[str, str]],
        stdin: StdioMode,
        stdout: StdioMode,
        stderr: StdioMode,
        timeout: Optional[Union[int, float]],
    ) -> ProcessResult:
        """Start a child, wait for it to exit or be killed and collect its output."""
        if env is not None:
            env = {**os.environ, **env}

        log.debug(f"starting {summarize(args)}")

        if self._closed:
            raise SpawnError(f"failed to spawn {args[0]}: shutting down")

        try:
            proc = subprocess.Popen(
                args,
                cwd=cwd,
                env=env,
                stdin=_STDIO[stdin],
                stdout=_STDIO[stdout],
                stderr=_STDIO[stderr],
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            raise SpawnError(f"failed to spawn {args[0]}: {e}")

        with self._running_lock:
            closed = self._closed
            self._running.add(proc)

        try:
            # Started while terminate_all() was running
            if closed:
                self._kill(proc)
                proc.wait()
                raise SpawnError(f"failed to spawn {args[0]}: shutting down")

            try:
                out, err = proc.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                log.info(f"killing {args[0]} (pid {proc.pid}) after {timeout} s")
                self._kill(proc)
                out, err = proc.communicate()
            except Exception:
                self._kill(proc)
                proc.wait()
                raise
        finally:
            with self._running_lock:
                self._running.discard(proc)

        # Negative return codes mean that the child was killed by a signal
        exit_code = proc.returncode if proc.returncode >= 0 else None

        log.debug(f"{args[0]} (pid {proc.pid}) finished with {proc.returncode}")

        return ProcessResult(
            stdout=self._decode(out),
            stderr=self._decode(err),
            exit_code=exit_code,
            success=exit_code == 0,
        )

    @staticmethod
    def _decode(output: Optional[bytes]) -> str:
        if output is None:
            return ""

        return output.decode("utf-8", errors="replace")

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        """Kill the process group of a child, which may have already exited."""
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, signal.SIGKILL)
