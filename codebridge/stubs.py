"""
Client stubs generated from the operation catalog.

For every contract in the catalog there is a stub that is called with the operation's
input fields as keyword arguments, validates them locally with the same model the server
uses, sends the call and parses the result back into the declared output type:

```
stubs = generate_stubs(rpc.Client("tcp://localhost:3000"))
stubs.fs.readFile(path="/etc/hostname", options="utf8")
```

Field names can be given in snake_case or in their camelCase wire form.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional

import pydantic

from codebridge import rpc
from codebridge.errors import validation_error
from codebridge.schema import BridgeModel, CATALOG, Contract


@dataclass(frozen=True)
class Call:
    """A validated call that has not been sent yet, used to build batches."""

    contract: Contract
    payload: Dict[str, Any]

    @property
    def name(self) -> str:
        return self.contract.name


class Stub:
    """Callable proxy for a single remote operation."""

    def __init__(self, client: rpc.Client, contract: Contract):
        """Instantiate a stub that makes calls for the contract using the client."""
        self._client = client
        self.contract = contract

        self.__name__ = contract.procedure
        self.__doc__ = contract.description

    def prepare(self, request: Optional[BridgeModel] = None, **fields: Any) -> Call:
        """
        Validate the input of a call without sending it.

        The input is given either as an instance of the input model, or as keyword
        arguments from which the model is built. Raises ValidationError if the input
        does not satisfy the contract.
        """
        input_type = self.contract.input_type

        if request is None:
            try:
                request = input_type.model_validate(fields)
            except pydantic.ValidationError as e:
                raise validation_error(e, self.contract.name) from None
        elif not isinstance(request, input_type):
            raise TypeError(f"{self.contract.name} expects {input_type.__name__}")

        payload = request.model_dump(mode="json", by_alias=True, exclude_none=True)

        return Call(self.contract, payload)

    def __call__(self, request: Optional[BridgeModel] = None, **fields: Any) -> Any:
        call = self.prepare(request, **fields)
        result = self._client.call(call.name, call.payload)

        return self.contract.load_output(result)

    def __repr__(self) -> str:
        return f"<stub {self.contract.name} ({self.contract.kind.value})>"


class StubNamespace:
    """Group of stubs (and nested groups) sharing a dotted name prefix."""

    def __init__(self, name: str = ""):
        """Instantiate an empty namespace."""
        self._name = name
        self._members: Dict[str, Any] = {}

    def _add(self, path: str, stub: Stub) -> None:
        head, _, rest = path.partition(".")

        if not rest:
            self._members[head] = stub
            return

        if head not in self._members:
            prefix = f"{self._name}.{head}" if self._name else head
            self._members[head] = StubNamespace(prefix)

        self._members[head]._add(rest, stub)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names that are not regular attributes
        members = self.__dict__.get("_members", {})

        if name not in members:
            prefix = self.__dict__.get("_name") or "(root)"
            raise AttributeError(f"no operation or namespace '{name}' in {prefix}")

        return members[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._members)

    def __dir__(self) -> Iterable[str]:
        return list(super().__dir__()) + list(self._members)

    def __repr__(self) -> str:
        return f"<stubs {self._name or '(root)'}: {', '.join(self._members)}>"


def generate_stubs(
    client: rpc.Client, contracts: Iterable[Contract] = CATALOG
) -> StubNamespace:
    """Build a namespace tree with a stub for every contract."""
    root = StubNamespace()

    for contract in contracts:
        root._add(contract.name, Stub(client, contract))

    return root
