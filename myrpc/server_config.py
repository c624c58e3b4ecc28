"""Server configuration file: parsing and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass

from myrpc.client_config import SOCKET_TYPES, ConfigError, _atoi, read_pairs

__all__ = ["ServerConfig", "parse_server_config", "validate_server_config"]

_SHORT_FIELD = 15
_PATH_FIELD = 255


@dataclass
class ServerConfig:
    """Settings the server listens and logs with."""

    port: int = 8080
    socket_type: str = "stream"
    max_connections: int = 10
    log_path: str = "/var/log/myrpc.log"


def parse_server_config(filename: str | os.PathLike[str]) -> ServerConfig:
    """Read a server config file; unknown keys are ignored, missing file gives defaults."""
    config = ServerConfig()
    pairs = read_pairs(filename)
    if pairs is None:
        return config
    for key, value in pairs:
        if key == "port":
            config.port = _atoi(value)
        elif key == "socket_type":
            config.socket_type = value[:_SHORT_FIELD]
        elif key == "max_connections":
            config.max_connections = _atoi(value)
        elif key == "log_path":
            config.log_path = value[:_PATH_FIELD]
    return config


def validate_server_config(config: ServerConfig) -> None:
    """Raise ``ConfigError`` if any setting is invalid."""
    if not 1 <= config.port <= 65535:
        raise ConfigError(f"Invalid port number: {config.port}")
    if config.socket_type not in SOCKET_TYPES:
        raise ConfigError(f"Invalid socket type: {config.socket_type}")
    if config.max_connections < 1:
        raise ConfigError(f"Invalid max connections: {config.max_connections}")