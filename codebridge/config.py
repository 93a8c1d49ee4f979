"""Module for configuration variables with defaults that are overridable by a file."""

from __future__ import annotations

from configparser import ConfigParser, SectionProxy
from dataclasses import dataclass, field
import os
from typing import Mapping, Optional

import codebridge.constants as constants
from codebridge.logger import log

DEFAULT_CONFIG_PATH = "~/.codebridge/config"


@dataclass
class ServerConfig:
    """Configuration variables related to the RPC server."""

    host: str = constants.DEFAULT_HOST
    port: int = constants.DEFAULT_PORT

    workers: int = 4
    compress_threshold: int = constants.DEFAULT_COMPRESS_THRESHOLD

    @staticmethod
    def load(section: SectionProxy) -> ServerConfig:
        """Load overridden variables from a section within a config file."""
        config = ServerConfig()

        config.host = section.get("host", fallback=config.host)
        config.port = section.getint("port", fallback=config.port)

        config.workers = section.getint("workers", fallback=config.workers)
        config.compress_threshold = section.getint(
            "compress_threshold", fallback=config.compress_threshold
        )

        return config

    def apply_environment(self, environ: Mapping[str, str]) -> None:
        """Override the port with the environment variable if it holds a valid one."""
        value = environ.get(constants.PORT_ENVIRONMENT_VARIABLE)

        if value is None:
            return

        try:
            port = int(value)

            if not 0 < port < 65536:
                raise ValueError("out of range")
        except ValueError:
            log.error(
                f"ignoring invalid {constants.PORT_ENVIRONMENT_VARIABLE} '{value}'"
            )
        else:
            self.port = port


@dataclass
class ProcessConfig:
    """Configuration variables related to running processes."""

    shell: str = "/bin/sh"

    @staticmethod
    def load(section: SectionProxy) -> ProcessConfig:
        """Load overridden variables from a section within a config file."""
        config = ProcessConfig()

        config.shell = section.get("shell", fallback=config.shell)

        return config


@dataclass
class Config:
    """Configuration variables."""

    server: ServerConfig = field(default_factory=ServerConfig)
    process: ProcessConfig = field(default_factory=ProcessConfig)

    @staticmethod
    def load(
        filename: str = DEFAULT_CONFIG_PATH,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Config:
        """
        Load overridden configuration variables from a config file.

        Variables from the environment (os.environ by default) take precedence over the
        ones from the file.
        """
        filename = os.path.expanduser(filename)
        parser = ConfigParser()

        config = Config()

        try:
            with open(filename, "r") as f:
                parser.read_string(f.read(), filename)

            if "server" in parser:
                config.server = ServerConfig.load(parser["server"])
            if "process" in parser:
                config.process = ProcessConfig.load(parser["process"])
        except FileNotFoundError:
            log.info(f"no config file at {filename}")
        except Exception as e:
            # An unreadable config file is not considered a fatal error since we can
            # fall back to defaults.
            log.error(f"failed to read config file {filename}: {e}")
        else:
            log.info(f"loaded config: {config}")

        config.server.apply_environment(os.environ if environ is None else environ)

        return config
