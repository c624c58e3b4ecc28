"""Server that runs shell commands on behalf of permitted users."""

from __future__ import annotations

import argparse
import logging
import os
import socket
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from myrpc.client_config import _atoi

__all__ = [
    "Settings",
    "parse_config",
    "is_user_allowed",
    "execute_command",
    "parse_request",
    "handle_request",
    "serve",
    "main",
]

_log = logging.getLogger(__name__)

CONFIG_FILE = "/etc/myRPC/myRPC.conf"
USERS_FILE = "/etc/myRPC/users.conf"
BUFFER_SIZE = 4096
_OUTPUT_LIMIT = BUFFER_SIZE - 1

INVALID_FORMAT = b'1:"Invalid request format"'
USER_NOT_ALLOWED = b'1:"User not allowed"'
EXECUTION_FAILED = b'1:"Command execution failed"'

_SOCKET_KINDS = {"stream": socket.SOCK_STREAM, "dgram": socket.SOCK_DGRAM}


@dataclass
class Settings:
    """Port and socket type the server listens with."""

    port: int = 1234
    socket_type: str = "stream"


def parse_config(path: str | os.PathLike[str] = CONFIG_FILE) -> Settings:
    """Read ``port =`` and ``socket_type =`` lines; raises ``OSError`` if unreadable."""
    settings = Settings()
    with open(path, encoding="utf-8", errors="surrogateescape", newline="") as fp:
        for raw in fp:
            line = raw.split("\n", 1)[0]
            if "port =" in line:
                settings.port = _atoi(line[line.index("=") + 2 :])
            elif "socket_type = stream" in line:
                settings.socket_type = "stream"
            elif "socket_type = dgram" in line:
                settings.socket_type = "dgram"
    return settings


def is_user_allowed(username: str, users_file: str | os.PathLike[str] = USERS_FILE) -> bool:
    """Tell whether ``username`` is listed on a line of its own in ``users_file``."""
    try:
        with open(users_file, encoding="utf-8", errors="surrogateescape", newline="") as fp:
            for raw in fp:
                line = raw.split("\n", 1)[0]
                if line.startswith("#"):
                    continue
                if line == username:
                    return True
    except OSError as exc:
        _log.error("Failed to open users file: %s", exc)
    return False


def _clip(output: bytes) -> bytes:
    return output[:_OUTPUT_LIMIT].split(b"\0", 1)[0]


def execute_command(cmd: str) -> bytes:
    """Run ``cmd`` with ``/bin/sh`` and return the encoded reply.

    Exit status 0 gives ``0:"<stdout>"``; anything else ``1:"<stderr>"``.
    """
    try:
        proc = subprocess.run(["/bin/sh", "-c", cmd], capture_output=True, check=False)
    except (OSError, ValueError) as exc:
        _log.error("Command execution failed: %s", exc)
        return EXECUTION_FAILED
    if proc.returncode == 0:
        return b'0:"' + _clip(proc.stdout) + b'"'
    return b'1:"' + _clip(proc.stderr) + b'"'


def parse_request(data: bytes) -> tuple[str, str]:
    """Extract the user and command from a ``"user":"command"`` request.

    Raises ``ValueError`` if the four quotes are not all there.
    """
    text = data.split(b"\0", 1)[0].decode("utf-8", "surrogateescape")
    parts = text.split('"', 4)
    if len(parts) < 5:
        raise ValueError("Invalid request format")
    return parts[1], parts[3]


def handle_request(data: bytes, users_file: str | os.PathLike[str] = USERS_FILE) -> bytes:
    """Check and run one request, returning the reply to send back."""
    try:
        username, command = parse_request(data)
    except ValueError:
        return INVALID_FORMAT
    if not is_user_allowed(username, users_file):
        return USER_NOT_ALLOWED
    return execute_command(command)


def _serve_stream(sock: socket.socket, users_file: str | os.PathLike[str]) -> None:
    while True:
        try:
            conn, _ = sock.accept()
        except OSError as exc:
            _log.error("Accept failed: %s", exc)
            continue
        with conn:
            try:
                data = conn.recv(BUFFER_SIZE)
                conn.sendall(handle_request(data, users_file))
            except OSError as exc:
                _log.error("Connection error: %s", exc)


def _serve_dgram(sock: socket.socket, users_file: str | os.PathLike[str]) -> None:
    while True:
        try:
            data, addr = sock.recvfrom(BUFFER_SIZE)
            sock.sendto(handle_request(data, users_file), addr)
        except OSError as exc:
            _log.error("Datagram error: %s", exc)


def serve(settings: Settings, users_file: str | os.PathLike[str] = USERS_FILE) -> None:
    """Bind to ``settings.port`` on all interfaces and answer requests forever.

    Raises ``OSError`` if the socket cannot be set up.
    """
    try:
        kind = _SOCKET_KINDS[settings.socket_type]
    except KeyError:
        raise ValueError(f"Invalid socket type: {settings.socket_type}") from None
    with socket.socket(socket.AF_INET, kind) as sock:
        sock.bind(("", settings.port))
        if kind == socket.SOCK_STREAM:
            sock.listen(5)
        _log.info("Server started on port %d", settings.port)
        if kind == socket.SOCK_STREAM:
            _serve_stream(sock, users_file)
        else:
            _serve_dgram(sock, users_file)


def main(argv: Sequence[str] | None = None) -> int:
    """Start the server; returns the process exit status."""
    parser = argparse.ArgumentParser(prog="myRPC-server", description="Run permitted users' commands.")
    parser.add_argument("--config", default=CONFIG_FILE, help="server configuration file")
    parser.add_argument("--users", default=USERS_FILE, help="file listing permitted users")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        settings = parse_config(args.config)
    except OSError as exc:
        _log.error("Failed to open config file: %s", exc)
        _log.error("Using default configuration")
        settings = Settings()

    try:
        serve(settings, args.users)
    except KeyboardInterrupt:
        return 0
    except (OSError, ValueError) as exc:
        _log.error("Server failed: %s", exc)
        return 1
    return 0