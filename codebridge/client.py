"""
Client for a codebridge server.

```
with BridgeClient("tcp://localhost:3000") as bridge:
    bridge.ping()
    bridge.fs.write_file("/tmp/hello.txt", "hello")
    print(bridge.process.exec("cat /tmp/hello.txt").stdout)
```
"""

from typing import Any, List, Optional

from codebridge import rpc
from codebridge.constants import DEFAULT_COMPRESS_THRESHOLD
from codebridge.errors import OperationError
from codebridge.filesystem import FileSystemClient
from codebridge.process import ProcessClient
from codebridge.stubs import Call, generate_stubs, Stub, StubNamespace


class BridgeClient:
    """Groups the generated stubs and the convenience clients for one server."""

    def __init__(
        self,
        endpoint: str,
        timeout_ms: int = -1,
        compress_threshold: int = DEFAULT_COMPRESS_THRESHOLD,
    ):
        """Instantiate a client for the server at the endpoint, like tcp://host:3000."""
        self.rpc = rpc.Client(endpoint, timeout_ms, compress_threshold)
        self.stubs: StubNamespace = generate_stubs(self.rpc)

        self.fs = FileSystemClient(self.stubs)
        self.process = ProcessClient(self.stubs)

    def ping(self, timeout_ms: Optional[int] = None) -> None:
        """Raise TransportError if the server is unavailable or incompatible."""
        self.rpc.ping(timeout_ms)

    def batch(self, *calls: Call) -> List[Any]:
        """
        Run prepared query calls in a single round trip.

        Calls are prepared with the stubs, like stubs.fs.exists.prepare(path="/tmp").
        Results are parsed like those of regular calls. A failed call has its exception
        in place of a result.
        """
        raw_results = self.rpc.batch([(call.name, call.payload) for call in calls])

        results: List[Any] = []

        for call, raw_result in zip(calls, raw_results):
            if isinstance(raw_result, OperationError):
                results.append(raw_result)
            else:
                results.append(call.contract.load_output(raw_result))

        return results

    def stub(self, name: str) -> Stub:
        """Look up the stub of an operation by its dotted name."""
        node: Any = self.stubs

        for part in name.split("."):
            node = getattr(node, part)

        if not isinstance(node, Stub):
            raise AttributeError(f"'{name}' is a namespace, not an operation")

        return node

    def close(self) -> None:
        self.rpc.close()

    def __enter__(self) -> "BridgeClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
