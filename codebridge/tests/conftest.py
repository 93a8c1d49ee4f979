"""Module with fixtures that run a real server on an ephemeral port."""

import threading

import pytest

from codebridge.client import BridgeClient
from codebridge.router import build_dispatcher
from codebridge.rpc import Server


@pytest.fixture
def start_server():
    """Return a function that starts a server in a thread and returns its endpoint."""
    servers = []

    def start(dispatcher, **kwargs) -> str:
        server = Server(dispatcher, **kwargs)
        endpoint = server.bind("tcp://127.0.0.1:*")

        t = threading.Thread(target=server.serve, daemon=True)
        t.start()

        servers.append((server, t))

        return endpoint

    yield start

    for server, t in servers:
        server.stop()
        t.join(timeout=10)


@pytest.fixture
def bridge(start_server):
    """Client connected to a server that serves the full operation catalog."""
    endpoint = start_server(build_dispatcher(), worker_count=4)

    client = BridgeClient(endpoint, timeout_ms=10000)

    yield client

    client.close()
