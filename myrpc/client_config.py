"""Client configuration file: parsing and validation."""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import Iterator
from dataclasses import dataclass

__all__ = ["ClientConfig", "ConfigError", "parse_client_config", "validate_client_config"]

_log = logging.getLogger(__name__)

_SHORT_FIELD = 15
SOCKET_TYPES = ("stream", "dgram")


class ConfigError(ValueError):
    """A configuration value is out of range or malformed."""


@dataclass
class ClientConfig:
    """Settings a client uses to reach the server."""

    server_ip: str = "127.0.0.1"
    port: int = 8080
    socket_type: str = "stream"
    timeout_ms: int = 5000


def _atoi(text: str) -> int:
    """Parse a leading decimal integer the lenient way, 0 if none."""
    text = text.lstrip()
    sign = 1
    if text[:1] in ("+", "-"):
        if text[0] == "-":
            sign = -1
        text = text[1:]
    digits = ""
    for ch in text:
        if not ("0" <= ch <= "9"):
            break
        digits += ch
    return sign * int(digits) if digits else 0


def _iter_pairs(filename: str | os.PathLike[str]) -> Iterator[tuple[str, str]]:
    """Yield stripped (key, value) pairs from a ``key = value`` file.

    Raises ``OSError`` if the file cannot be opened.
    """
    with open(filename, encoding="utf-8", errors="surrogateescape") as file:
        for raw in file:
            line = raw.split("#", 1)[0]
            line = line.lstrip("=")
            key, sep, rest = line.partition("=")
            if not sep:
                continue
            value = rest.lstrip("\n").split("\n", 1)[0]
            if not value:
                continue
            yield key.strip(), value.strip()


def read_pairs(filename: str | os.PathLike[str]) -> list[tuple[str, str]] | None:
    """Return the file's pairs, or ``None`` (with a warning) if it cannot be read."""
    try:
        return list(_iter_pairs(filename))
    except OSError as exc:
        _log.warning("Failed to open config file, using defaults: %s", exc)
        return None


def parse_client_config(filename: str | os.PathLike[str]) -> ClientConfig:
    """Read a client config file; unknown keys are ignored, missing file gives defaults."""
    config = ClientConfig()
    pairs = read_pairs(filename)
    if pairs is None:
        return config
    for key, value in pairs:
        if key == "server_ip":
            config.server_ip = value[:_SHORT_FIELD]
        elif key == "port":
            config.port = _atoi(value)
        elif key == "socket_type":
            config.socket_type = value[:_SHORT_FIELD]
        elif key == "timeout_ms":
            config.timeout_ms = _atoi(value)
    return config


def validate_client_config(config: ClientConfig) -> None:
    """Raise ``ConfigError`` if any setting is invalid."""
    try:
        socket.inet_pton(socket.AF_INET, config.server_ip)
    except OSError:
        raise ConfigError(f"Invalid server IP: {config.server_ip}") from None
    if not 1 <= config.port <= 65535:
        raise ConfigError(f"Invalid port number: {config.port}")
    if config.socket_type not in SOCKET_TYPES:
        raise ConfigError(f"Invalid socket type: {config.socket_type}")
    if config.timeout_ms < 0:
        raise ConfigError(f"Invalid timeout value: {config.timeout_ms}")