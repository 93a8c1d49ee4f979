"""Module defining various global constants."""

# codebridge version
VERSION = "1.0.0"

# codebridge protocol
# The major version must be identical on client and server.
PROTOCOL_VERSION = "1.0.0"

# Special exit code for when the server fails to start or crashes.
SERVER_ERROR_CODE = 254

# Defaults for the server endpoint
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000

# Environment variable that overrides the configured port
PORT_ENVIRONMENT_VARIABLE = "CODEBRIDGE_PORT"

# Wire frames larger than this are LZ4 compressed
DEFAULT_COMPRESS_THRESHOLD = 64 * 1024
