"""Module that binds every operation in the catalog to its implementation."""

from typing import Callable, Dict, Iterable, Optional

from codebridge.config import ProcessConfig
from codebridge.dispatch import Dispatcher, Guard, Operation
from codebridge.filesystem import FileSystemService
from codebridge.process import ProcessService
from codebridge.schema import CATALOG


def build_dispatcher(
    process_config: Optional[ProcessConfig] = None, guards: Iterable[Guard] = ()
) -> Dispatcher:
    """
    Build the dispatcher that serves the full operation catalog.

    Raises KeyError if an operation in the catalog has no implementation, so that an
    incomplete server fails at startup rather than on the first call.
    """
    process_config = process_config or ProcessConfig()
    processes = ProcessService(shell=process_config.shell)

    handlers: Dict[str, Callable] = {
        "fs.exists": FileSystemService.exists,
        "fs.mkdir": FileSystemService.mkdir,
        "fs.readdir": FileSystemService.readdir,
        "fs.readFile": FileSystemService.read_file,
        "fs.stat": FileSystemService.stat,
        "fs.writeFile": FileSystemService.write_file,
        "fs.fileSize": FileSystemService.file_size,
        "fs.delete": FileSystemService.delete,
        "process.spawn": processes.spawn,
        "process.exec": processes.exec,
    }

    operations = []

    for contract in CATALOG:
        if contract.name not in handlers:
            raise KeyError(f"no implementation for operation '{contract.name}'")

        operations.append(Operation(contract, handlers[contract.name]))

    return Dispatcher(operations, guards=guards, cleanups=[processes.terminate_all])
