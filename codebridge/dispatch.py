"""
Procedure dispatcher that binds operation names to their implementations.

The dispatcher is constructed once at startup from an explicit list of operations and
is immutable afterwards, so it can be shared by all worker threads of the server
without any locking. It validates every input against the operation's contract before
the operation runs, invokes the operation exactly once and turns the outcome into a
reply that always has one of these shapes:

* {"result": <JSON compatible value>}
* {"error": <ErrorEnvelope>}
"""

from dataclasses import dataclass
import logging
import time
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping

import pydantic

from codebridge.constants import PROTOCOL_VERSION
from codebridge.errors import (
    OperationError,
    to_envelope,
    UnknownOperationError,
    validation_error,
    ValidationError,
)
from codebridge.logger import log, summarize
from codebridge.schema import BridgeModel, Contract, OperationKind

Handler = Callable[[Any], Any]


@dataclass(frozen=True)
class Operation:
    """A contract bound to the function that implements it."""

    contract: Contract
    handler: Handler

    @property
    def name(self) -> str:
        return self.contract.name

    @property
    def kind(self) -> OperationKind:
        return self.contract.kind


# Called with the operation and its validated input before the operation runs. Raising
# an exception rejects the call.
Guard = Callable[[Operation, BridgeModel], None]


def error_reply(exc: BaseException) -> Dict[str, Any]:
    """Turn an exception into an error reply."""
    envelope = to_envelope(exc)
    return {"error": envelope.model_dump(mode="json", exclude_none=True)}


def _describe_target(payload: Any, max_length: int = 80) -> str:
    """Return a short preview of the path or command a call acts on, if any."""
    if not isinstance(payload, dict):
        return ""

    target = payload.get("path", payload.get("command"))

    if isinstance(target, list):
        target = " ".join(str(arg)[:max_length] for arg in target[:8])

    if not isinstance(target, str):
        return ""

    return summarize(target[: max_length + 1], max_length)


class Dispatcher:
    """Validates and invokes operations by name."""

    def __init__(
        self,
        operations: Iterable[Operation],
        guards: Iterable[Guard] = (),
        cleanups: Iterable[Callable[[], None]] = (),
    ):
        """
        Instantiate a dispatcher for the given operations.

        Guards are run in order for every call that passes validation. Cleanups are run
        when the dispatcher is closed.
        """
        operation_map: Dict[str, Operation] = {}

        for operation in operations:
            if operation.name in operation_map:
                raise ValueError(f"duplicate operation '{operation.name}'")

            operation_map[operation.name] = operation

        self._operations: Mapping[str, Operation] = MappingProxyType(operation_map)
        self._guards = tuple(guards)
        self._cleanups = tuple(cleanups)

    @property
    def operations(self) -> Mapping[str, Operation]:
        """Return the read-only mapping of operation names to operations."""
        return self._operations

    def describe(self) -> Dict[str, Any]:
        """Advertise the protocol version and the kind of every operation."""
        return {
            "protocol": PROTOCOL_VERSION,
            "operations": {
                name: operation.kind.value
                for name, operation in self._operations.items()
            },
        }

    def dispatch(self, name: Any, payload: Any) -> Dict[str, Any]:
        """Run a single call and return its reply."""
        t_call = time.time()

        try:
            reply = {"result": self._invoke(name, payload)}
        except (OperationError, OSError) as e:
            log.info(f"{name} failed: {e}")
            reply = error_reply(e)
        except Exception as e:
            log.error(f"{name} raised an unexpected error: {e}")
            reply = error_reply(e)

        if log.isEnabledFor(logging.DEBUG):
            t_millis = round((time.time() - t_call) * 1000)
            log.debug(f"{name} - {t_millis} ms")

        return reply

    def dispatch_batch(self, calls: Any) -> List[Dict[str, Any]]:
        """
        Run a batch of calls in order and return their replies.

        Only queries can be batched. Mutations inside a batch are rejected without
        being run, since a batch may be retried or reordered by a transport.
        """
        if not isinstance(calls, list):
            raise ValidationError("batch must be a list of calls")

        replies = []

        for call in calls:
            if not isinstance(call, dict):
                replies.append(error_reply(ValidationError("malformed call in batch")))
                continue

            name = call.get("operationName")
            operation = self._operations.get(name) if isinstance(name, str) else None

            if operation is not None and operation.kind == OperationKind.MUTATION:
                replies.append(
                    error_reply(ValidationError(f"mutation {name} cannot be batched"))
                )
            else:
                replies.append(self.dispatch(name, call.get("input")))

        return replies

    def close(self) -> None:
        """Run the cleanup callbacks."""
        for cleanup in self._cleanups:
            try:
                cleanup()
            except Exception as e:
                log.error(f"cleanup failed: {e}")

    def _invoke(self, name: Any, payload: Any) -> Any:
        """Validate the input, run the operation and serialize its result."""
        operation = self._operations.get(name) if isinstance(name, str) else None

        if operation is None:
            raise UnknownOperationError(f"unknown operation '{name}'")

        log.info(f"{operation.kind.value} {name} {_describe_target(payload)}".rstrip())

        if log.isEnabledFor(logging.DEBUG):
            log.debug(f"{name} input: {summarize(payload)}")

        try:
            request = operation.contract.input_type.model_validate(payload)
        except pydantic.ValidationError as e:
            raise validation_error(e, name) from None

        for guard in self._guards:
            guard(operation, request)

        result = operation.handler(request)

        return operation.contract.dump_output(result)
