"""Input and output shapes of the process operations."""

import math
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import (
    AfterValidator,
    Field,
    model_validator,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
)

from .common import BridgeModel, Path

StdioMode = Literal["pipe", "inherit", "ignore"]


def _check_timeout(value: Union[int, float]) -> Union[int, float]:
    if not math.isfinite(value):
        raise ValueError("timeout must be a finite number")

    if value <= 0:
        raise ValueError("timeout must be greater than zero")

    return value


Timeout = Annotated[Union[StrictInt, StrictFloat], AfterValidator(_check_timeout)]

Environment = Dict[StrictStr, StrictStr]

Arguments = Annotated[List[StrictStr], Field(min_length=1)]


class SpawnOptions(BridgeModel):
    cwd: Optional[Path] = Field(default=None, description="Working directory")
    env: Optional[Environment] = Field(
        default=None, description="Variables merged over the server's environment"
    )
    stdin: Optional[StdioMode] = Field(default=None, description="Default 'ignore'")
    stdout: Optional[StdioMode] = Field(default=None, description="Default 'pipe'")
    stderr: Optional[StdioMode] = Field(default=None, description="Default 'pipe'")
    timeout: Optional[Timeout] = Field(
        default=None, description="Seconds after which the process is killed"
    )


class SpawnInput(BridgeModel):
    command: Arguments = Field(
        description="Executable followed by its arguments, no shell involved"
    )
    options: Optional[SpawnOptions] = None


class ExecOptions(BridgeModel):
    cwd: Optional[Path] = Field(default=None, description="Working directory")
    env: Optional[Environment] = Field(
        default=None, description="Variables merged over the server's environment"
    )
    shell: Optional[StrictBool] = Field(
        default=None, description="Run through the shell (default true)"
    )
    timeout: Optional[Timeout] = Field(
        default=None, description="Seconds after which the process is killed"
    )


class ExecInput(BridgeModel):
    command: Union[StrictStr, Arguments] = Field(
        description="Shell command line, or arguments that are quoted and joined"
    )
    options: Optional[ExecOptions] = None


class ProcessResult(BridgeModel):
    """Captured output and exit status of a finished process."""

    stdout: StrictStr
    stderr: StrictStr
    exit_code: Optional[StrictInt] = Field(
        description="Exit status, or null if the process was killed by a signal"
    )
    success: StrictBool

    @model_validator(mode="after")
    def check_success(self) -> "ProcessResult":
        if self.success != (self.exit_code == 0):
            raise ValueError("success must be true exactly when the exit code is 0")

        return self
