"""
Remote file system and process execution over a typed RPC protocol.

A codebridge server exposes a fixed catalog of operations (fs.readFile, fs.stat,
process.spawn, ...) to clients on the network. Every call is validated against the
operation's pydantic contract before anything touches the host, and every failure
comes back as a structured error envelope that the client turns into a familiar
exception like FileNotFoundError.

The server performs no authentication or path confinement. Only expose it to
clients that are allowed to do anything the server's user can do.
"""
