"""
RPC client and server for named operations based on ZeroMQ and MessagePack.

codebridge exposes a catalog of named operations (like fs.readFile or process.exec)
whose inputs and outputs are JSON compatible values. The transport only has to move
those values back and forth with low overhead and from multiple threads at once, which
ZeroMQ and MessagePack make easy:

* Native support for multithreading
    * On the server side with multiple workers behind a ROUTER/DEALER proxy
    * On the client side with a socket per thread
* Compact frames
    * MessagePack keeps the framing overhead per call small.
    * Large frames (like whole files) are LZ4 compressed.
* Errors as values
    * The server never sends exceptions, only error envelopes that the client turns
    back into exceptions.
    * Failures of the transport itself raise TransportError instead, so a caller can
    always tell whether the operation ran and failed or whether no answer arrived.

Every frame starts with a marker byte that tells if the MessagePack body that follows is
compressed. Frames are self-describing that way, so client and server can each pick
their own compression threshold. The body of a request is one of:

* {"operationName": <str>, "input": <value>}
* {"batch": [{"operationName": <str>, "input": <value>}, ...]}
* {"describe": true}

And the body of a reply is one of:

* {"result": <value>}
* {"error": <ErrorEnvelope>}
* {"batch": [<reply>, ...]}
"""

import logging
import threading
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import lz4.frame
import msgpack
import pydantic
from semver import Version
import zmq

from codebridge.constants import DEFAULT_COMPRESS_THRESHOLD, PROTOCOL_VERSION
from codebridge.dispatch import Dispatcher, error_reply
from codebridge.errors import (
    from_envelope,
    OperationError,
    TransportError,
    ValidationError,
)
from codebridge.logger import log, summarize
from codebridge.schema import ErrorEnvelope

# Frame markers
PLAIN = 0
LZ4 = 1

# Message sent on the control socket of the proxy to stop the server
TERMINATE = b"TERMINATE"


class Encoding:
    """Serialization and deserialization of frames using MessagePack and LZ4."""

    def __init__(self, compress_threshold: int = DEFAULT_COMPRESS_THRESHOLD):
        """Initialize an encoding that compresses bodies of at least the given size."""
        self.compress_threshold = compress_threshold

    def pack(self, obj: Any) -> bytes:
        """Serialize an object into a frame."""
        body = msgpack.packb(obj)

        if len(body) >= self.compress_threshold:
            return bytes([LZ4]) + lz4.frame.compress(body)
        else:
            return bytes([PLAIN]) + body

    def unpack(self, frame: bytes) -> Any:
        """Deserialize a frame, raises ValueError if it is malformed."""
        if not frame:
            raise ValueError("empty frame")

        marker, body = frame[0], frame[1:]

        try:
            if marker == LZ4:
                body = lz4.frame.decompress(body)
            elif marker != PLAIN:
                raise ValueError(f"unknown frame marker {marker}")

            return msgpack.unpackb(body)
        except ValueError:
            raise
        except Exception as e:
            raise ValueError(f"undecodable frame: {e}")


class Server:
    """
    RPC server that exposes the operations of a dispatcher.

    Example:
    ```
    server = rpc.Server(dispatcher, worker_count=4)
    server.serve("tcp://127.0.0.1:3000")
    ```
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        worker_count: int = 1,
        compress_threshold: int = DEFAULT_COMPRESS_THRESHOLD,
    ):
        """
        Instantiate an RPC server for the given dispatcher.

        Incoming calls will be distributed across the specified number of worker
        threads. Replies of at least compress_threshold bytes are compressed.
        """
        self.context = zmq.Context()

        self.dispatcher = dispatcher
        self.worker_count = worker_count

        self._encoding = Encoding(compress_threshold)
        self._frontend: Optional[zmq.Socket] = None

        self._workers_endpoint = f"inproc://workers-{id(self)}"
        self._control_endpoint = f"inproc://control-{id(self)}"

    def bind(self, endpoint: str) -> str:
        """
        Bind the server to an endpoint without handling calls yet.

        The endpoint should have the format of endpoint in zmq_bind
        (http://api.zeromq.org/4-3:zmq-bind), for example "tcp://127.0.0.1:3000". A
        wildcard port like "tcp://127.0.0.1:*" binds an ephemeral port. Returns the
        endpoint that was actually bound. Raises zmq.ZMQError if binding fails.
        """
        socket = self.context.socket(zmq.ROUTER)

        try:
            socket.bind(endpoint)
        except zmq.ZMQError:
            socket.close(linger=0)
            raise

        self._frontend = socket

        return socket.getsockopt_string(zmq.LAST_ENDPOINT)

    def serve(self, endpoint: Optional[str] = None) -> None:
        """
        Handle calls until the server is stopped.

        Binds to the endpoint first if one is specified, otherwise the server must have
        been bound already. When the server stops (through stop() or an exception like
        KeyboardInterrupt), running children are killed and all sockets are closed.
        """
        if endpoint is not None:
            self.bind(endpoint)

        if self._frontend is None:
            raise ValueError("server is not bound to an endpoint")

        workers_socket = self.context.socket(zmq.DEALER)
        workers_socket.bind(self._workers_endpoint)

        control_socket = self.context.socket(zmq.PAIR)
        control_socket.bind(self._control_endpoint)

        workers = []

        for _ in range(self.worker_count):
            t = threading.Thread(target=self._run_worker, daemon=True)
            t.start()
            workers.append(t)

        log.info(f"listening on {self._frontend.getsockopt_string(zmq.LAST_ENDPOINT)}")

        try:
            zmq.proxy_steerable(self._frontend, workers_socket, None, control_socket)
        finally:
            log.info("shutting down")

            # No new calls may reach the workers once the children have been killed
            self._frontend.close(linger=0)

            self.dispatcher.close()

            for socket in (workers_socket, control_socket):
                socket.close(linger=0)

            # Blocks until every worker has closed its socket
            self.context.term()

            for t in workers:
                t.join()

    def stop(self) -> None:
        """Make serve() return, can be called from any thread."""
        if self.context.closed:
            return

        socket = self.context.socket(zmq.PAIR)

        try:
            socket.connect(self._control_endpoint)
            socket.send(TERMINATE)
        finally:
            socket.close()

    def _run_worker(self) -> None:
        """Request/response loop to handle calls for a single worker thread."""
        socket = self.context.socket(zmq.REP)
        socket.connect(self._workers_endpoint)

        try:
            while True:
                frame = socket.recv()
                socket.send(self._encoding.pack(self._handle(frame)))
        except zmq.ContextTerminated:
            pass
        finally:
            socket.close(linger=0)

    def _handle(self, frame: bytes) -> Dict[str, Any]:
        """Turn a request frame into a reply, never raises."""
        try:
            request = self._encoding.unpack(frame)
        except ValueError as e:
            log.warning(f"received malformed frame: {e}")
            return error_reply(ValidationError(f"malformed frame: {e}"))

        if not isinstance(request, dict):
            return error_reply(ValidationError("request must be a map"))

        try:
            if "batch" in request:
                return {"batch": self.dispatcher.dispatch_batch(request["batch"])}
            elif request.get("describe"):
                return {"result": self.dispatcher.describe()}
            else:
                return self.dispatcher.dispatch(
                    request.get("operationName"), request.get("input")
                )
        except Exception as e:
            return error_reply(e)


class Client:
    """
    RPC client to invoke the named operations of an RPC server.

    A single client can be used by multiple threads and will internally create multiple
    socket connections as needed.

    Example:
    ```
    client = rpc.Client("tcp://localhost:3000")
    client.call("fs.exists", {"path": "/tmp"})
    ```
    """

    def __init__(
        self,
        endpoint: str,
        timeout_ms: int = -1,
        compress_threshold: int = DEFAULT_COMPRESS_THRESHOLD,
    ) -> None:
        """
        Instantiate an RPC client for the server at the given endpoint.

        The endpoint should follow the format of endpoint in zmq_connect
        (http://api.zeromq.org/4-3:zmq-connect), for example "tcp://localhost:3000".
        A timeout of -1 waits for replies indefinitely.
        """
        self.endpoint = endpoint
        self.timeout_ms = timeout_ms

        self.context = zmq.Context()

        self._encoding = Encoding(compress_threshold)

        self._socket_pool: Dict[threading.Thread, zmq.Socket] = {}
        self._socket_pool_lock = threading.Lock()

    def _socket(self) -> zmq.Socket:
        """
        Return a socket to be used for the current thread.

        Each thread needs its own socket because REQUEST-REPLY need to happen in
        lockstep per socket.
        """
        t = threading.current_thread()

        with self._socket_pool_lock:
            if t not in self._socket_pool:
                sock = self.context.socket(zmq.REQ)

                sock.setsockopt(zmq.RCVTIMEO, self.timeout_ms)
                sock.setsockopt(zmq.SNDTIMEO, self.timeout_ms)
                sock.setsockopt(zmq.LINGER, 0)

                sock.connect(self.endpoint)

                self._socket_pool[t] = sock

            return self._socket_pool[t]

    def _discard_socket(self) -> None:
        """
        Close the socket of the current thread.

        A REQ socket that did not receive a reply cannot be used for another request,
        so it is replaced by a new one on the next call.
        """
        with self._socket_pool_lock:
            sock = self._socket_pool.pop(threading.current_thread(), None)

        if sock is not None:
            sock.close(linger=0)

    def _request(
        self, request: Dict[str, Any], timeout_ms: Optional[int] = None
    ) -> Dict[str, Any]:
        """Send a request and wait for its reply."""
        sock = self._socket()

        # Temporarily override timeout
        if timeout_ms is not None:
            sock.setsockopt(zmq.RCVTIMEO, timeout_ms)
            sock.setsockopt(zmq.SNDTIMEO, timeout_ms)

        try:
            sock.send(self._encoding.pack(request))
            frame = sock.recv()
        except zmq.Again:
            self._discard_socket()
            raise TransportError("rpc call timed out")
        except zmq.ZMQError as e:
            self._discard_socket()
            raise TransportError(f"rpc call failed: {e}")
        finally:
            # Restore to the constructor timeout
            if timeout_ms is not None and not sock.closed:
                sock.setsockopt(zmq.RCVTIMEO, self.timeout_ms)
                sock.setsockopt(zmq.SNDTIMEO, self.timeout_ms)

        try:
            reply = self._encoding.unpack(frame)
        except ValueError as e:
            raise TransportError(f"malformed reply: {e}")

        if not isinstance(reply, dict):
            raise TransportError(f"unexpected reply {summarize(reply)}")

        return reply

    @staticmethod
    def _error(error: Any) -> OperationError:
        """Reconstruct the exception described by the error envelope of a reply."""
        try:
            envelope = ErrorEnvelope.model_validate(error)
        except pydantic.ValidationError:
            raise TransportError(f"malformed error {summarize(error)}") from None

        return from_envelope(envelope)

    @classmethod
    def _result(cls, reply: Any) -> Any:
        """Return the result of a reply or raise the exception it describes."""
        if isinstance(reply, dict):
            if "error" in reply:
                raise cls._error(reply["error"])
            elif "result" in reply:
                return reply["result"]

        raise TransportError(f"unexpected reply {summarize(reply)}")

    def call(self, name: str, input: Any = None) -> Any:
        """
        Call a remote operation with its input and return its result.

        Raises the OperationError subclass matching the envelope if the operation
        failed, or TransportError if no valid reply was received in time.
        """
        t_call = time.time()

        reply = self._request({"operationName": name, "input": input})

        # Explicit check before logging because summarize is relatively slow
        if log.isEnabledFor(logging.DEBUG):
            t_millis = round((time.time() - t_call) * 1000)
            log.debug(f"rpc::{name}({summarize(input)}) - {t_millis} ms")

        return self._result(reply)

    def batch(self, calls: Sequence[Tuple[str, Any]]) -> List[Any]:
        """
        Call multiple operations in one round trip.

        Returns the results in the order of the calls. Calls that failed have the
        exception in place of their result instead of raising it, so that one failing
        call does not hide the results of the others. The server only accepts queries
        in a batch.
        """
        batch = [{"operationName": name, "input": input} for name, input in calls]
        reply = self._request({"batch": batch})

        if "error" in reply:
            raise self._error(reply["error"])

        replies = reply.get("batch")

        if not isinstance(replies, list) or len(replies) != len(calls):
            raise TransportError(f"unexpected batch reply {summarize(reply)}")

        results: List[Any] = []

        for call_reply in replies:
            try:
                results.append(self._result(call_reply))
            except OperationError as e:
                results.append(e)

        return results

    def describe(self, timeout_ms: Optional[int] = None) -> Dict[str, Any]:
        """Retrieve the protocol version and the operations offered by the server."""
        description = self._result(self._request({"describe": True}, timeout_ms))

        if not isinstance(description, dict):
            raise TransportError(f"unexpected description {summarize(description)}")

        return description

    def ping(self, timeout_ms: Optional[int] = None) -> None:
        """
        Check if the server is available and speaks a compatible protocol.

        The check will use the timeout from the constructor by default, but this timeout
        can be overridden using the parameter.
        """
        description = self.describe(timeout_ms)

        try:
            server_protocol = Version.parse(description["protocol"])
        except (KeyError, TypeError, ValueError):
            raise TransportError("server did not report a valid protocol version")

        client_protocol = Version.parse(PROTOCOL_VERSION)

        if server_protocol.major != client_protocol.major:
            raise TransportError(
                f"incompatible protocol ({server_protocol} != {client_protocol})"
            )

    def close(self) -> None:
        """Close the client sockets and their ZeroMQ context."""
        with self._socket_pool_lock:
            for sock in self._socket_pool.values():
                sock.close(linger=0)

            self._socket_pool.clear()

        if not self.context.closed:
            self.context.destroy(linger=0)

    def __del__(self) -> None:
        self.close()

    @property
    def socket_count(self) -> int:
        """Return the number of sockets for this client."""
        with self._socket_pool_lock:
            return len(self._socket_pool)
