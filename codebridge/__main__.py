"""
Module implementing the command-line interface and starting the codebridge server.

The server exposes the file system and process execution of the machine it runs on as a
catalog of remote operations. It listens on a single TCP endpoint and handles calls
with a pool of worker threads until it is interrupted or terminated, at which point any
processes that are still running on behalf of callers are killed.
"""

import logging
import signal
import sys
from types import FrameType
from typing import List, NoReturn, Optional

import zmq

from codebridge.config import Config
import codebridge.constants as constants
from codebridge.logger import log
import codebridge.router as router
import codebridge.rpc as rpc
from .args import Arguments


def _interrupt(signum: int, frame: Optional[FrameType]) -> NoReturn:
    raise KeyboardInterrupt()


def main(arguments: Optional[List[str]] = None) -> NoReturn:
    """
    Run the server with the given arguments.

    Defaults to parsing command-line arguments from sys.argv if none are specified.
    """
    # Parse command-line arguments.
    args = Arguments.parse(arguments)

    # Configure debug logging.
    if args.debug:
        log.setLevel(logging.DEBUG)
    else:
        log.setLevel(logging.INFO)

    # Command-line arguments take precedence over the environment and config file.
    config = Config.load(args.config)

    if args.host is not None:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.workers is not None:
        config.server.workers = args.workers

    server = rpc.Server(
        router.build_dispatcher(config.process),
        worker_count=config.server.workers,
        compress_threshold=config.server.compress_threshold,
    )

    endpoint = f"tcp://{config.server.host}:{config.server.port}"

    try:
        server.bind(endpoint)
    except zmq.ZMQError as e:
        log.error(f"failed to listen on {endpoint}: {e}")
        sys.exit(constants.SERVER_ERROR_CODE)

    # Shut down cleanly on SIGTERM just like on SIGINT.
    previous_handler = signal.signal(signal.SIGTERM, _interrupt)

    try:
        server.serve()
        exit_code = 0
    except KeyboardInterrupt:
        exit_code = 0
    except Exception as e:
        log.error(f"server failed: {e}")
        exit_code = constants.SERVER_ERROR_CODE
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
