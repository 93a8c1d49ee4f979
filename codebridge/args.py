"""Module defining the command-line arguments and providing a parser for them."""

from __future__ import annotations

import argparse
from typing import List, Optional

from codebridge.config import DEFAULT_CONFIG_PATH
from codebridge.constants import PORT_ENVIRONMENT_VARIABLE, PROTOCOL_VERSION, VERSION


class Arguments(argparse.Namespace):
    """Parsed command-line arguments."""

    host: Optional[str]
    port: Optional[int]
    workers: Optional[int]

    config: str

    debug: bool

    @classmethod
    def parse(cls, args: Optional[List[str]] = None) -> Arguments:
        """
        Parse command-line arguments from the given list of strings.

        Defaults to sys.argv if none are specified.
        """
        return cls._get_parser().parse_args(args, namespace=cls())

    @classmethod
    def _get_parser(cls) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Expose the file system and process execution of this machine.",
            usage="codebridge [option...]",
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {VERSION} (protocol {PROTOCOL_VERSION})",
            help="show the program version and protocol version",
        )

        # Endpoint, defaults to the config file
        parser.add_argument(
            "--host", type=str, help="address to listen on (default is 127.0.0.1)"
        )
        parser.add_argument(
            "--port",
            type=cls._parse_port,
            help=f"port to listen on (default is ${PORT_ENVIRONMENT_VARIABLE} or 3000)",
        )

        # Configure number of workers
        parser.add_argument(
            "--workers",
            type=cls._parse_workers,
            help="number of threads handling calls (default is 4)",
        )

        # Path to (optional) config file
        parser.add_argument(
            "--config",
            type=str,
            help=f"path to config file (default is {DEFAULT_CONFIG_PATH})",
            default=DEFAULT_CONFIG_PATH,
        )

        # Enable debug output for development
        parser.add_argument(
            "--debug", action="store_true", help="enable debug information"
        )

        return parser

    @staticmethod
    def _parse_port(arg: str) -> int:
        try:
            val = int(arg)
            assert 0 < val < 65536
            return val
        except (ValueError, AssertionError):
            raise argparse.ArgumentTypeError("expected port number between 1 and 65535")

    @staticmethod
    def _parse_workers(arg: str) -> int:
        try:
            val = int(arg)
            assert val > 0
            return val
        except (ValueError, AssertionError):
            raise argparse.ArgumentTypeError("expected number > 0")
