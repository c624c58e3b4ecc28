"""Daemonised command server speaking the plain ``user:command`` protocol."""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import signal
import socket
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from myrpc.client_config import _atoi

__all__ = [
    "DaemonSettings",
    "DaemonServer",
    "parse_config",
    "is_user_allowed",
    "execute_command",
    "parse_request",
    "handle_request",
    "daemonize",
    "main",
]

_log = logging.getLogger(__name__)

CONFIG_FILE = "/etc/myRPC/myRPC.conf"
USERS_FILE = "/etc/myRPC/users.conf"
DEFAULT_PORT = 1234
MAX_CLIENTS = 10
REQUEST_SIZE = 1023
_POLL_INTERVAL = 0.2

INVALID_FORMAT = b"1:Invalid format"
USER_NOT_ALLOWED = b"1:User not allowed"
FORK_FAILED = b"1:Fork failed"

_SOCKET_KINDS = {"stream": socket.SOCK_STREAM, "dgram": socket.SOCK_DGRAM}


@dataclass
class DaemonSettings:
    """Port and socket type the daemon listens with."""

    port: int = DEFAULT_PORT
    socket_type: str = "stream"


def _is_skipped(line: str) -> bool:
    return line.startswith("#") or line.startswith("\n") or line == ""


def parse_config(filename: str | os.PathLike[str] = CONFIG_FILE) -> DaemonSettings:
    """Read ``port =`` and ``socket_type =`` lines; raises ``OSError`` if unreadable."""
    settings = DaemonSettings()
    with open(filename, encoding="utf-8", errors="surrogateescape", newline="") as file:
        for line in file:
            if _is_skipped(line):
                continue
            if "port =" in line:
                settings.port = _atoi(line[line.index("=") + 1 :])
            elif "socket_type =" in line:
                if "stream" in line:
                    settings.socket_type = "stream"
                elif "dgram" in line:
                    settings.socket_type = "dgram"
    return settings


def is_user_allowed(user: str, users_file: str | os.PathLike[str] = USERS_FILE) -> bool:
    """Tell whether ``user`` is listed on a non-comment line of ``users_file``."""
    try:
        with open(users_file, encoding="utf-8", errors="surrogateescape", newline="") as file:
            for line in file:
                if _is_skipped(line):
                    continue
                if line.split("\n", 1)[0] == user:
                    return True
    except OSError as exc:
        _log.error("Failed to open users file: %s", exc)
    return False


def execute_command(command: str) -> bytes:
    """Run ``command`` with ``/bin/sh`` and return the reply.

    Any output on stderr gives ``1:<stderr>``; otherwise ``0:<stdout>``.
    """
    try:
        proc = subprocess.run(
            ["/bin/sh", "-c", command],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            check=False,
        )
    except (OSError, ValueError) as exc:
        _log.error("Fork failed: %s", exc)
        return FORK_FAILED
    if proc.stderr:
        return b"1:" + proc.stderr
    return b"0:" + proc.stdout


def parse_request(data: bytes) -> tuple[str, str]:
    """Split a ``user:command`` request into its two parts.

    Leading colons are ignored. Raises ``ValueError`` if either part is empty.
    """
    text = data.split(b"\0", 1)[0].decode("utf-8", "surrogateescape")
    user, _, command = text.lstrip(":").partition(":")
    if not user or not command:
        raise ValueError("Invalid request format")
    return user, command


def handle_request(data: bytes, users_file: str | os.PathLike[str] = USERS_FILE) -> bytes:
    """Check and run one request, returning the reply to send back."""
    try:
        user, command = parse_request(data)
    except ValueError:
        _log.error("Invalid request format")
        return INVALID_FORMAT
    if not is_user_allowed(user, users_file):
        _log.warning("User %s not allowed", user)
        return USER_NOT_ALLOWED
    return execute_command(command)


def _send(send: Callable[[bytes], object], reply: bytes) -> None:
    try:
        send(reply.split(b"\0", 1)[0])
    except OSError as exc:
        _log.error("Failed to send response: %s", exc)


class DaemonServer:
    """Socket server answering requests until :meth:`stop` is called."""

    def __init__(
        self,
        settings: DaemonSettings,
        users_file: str | os.PathLike[str] = USERS_FILE,
    ) -> None:
        self.settings = settings
        self.users_file = users_file
        self.server_address: tuple[str, int] | None = None
        self.ready = threading.Event()
        self._stopped = threading.Event()

    def serve_forever(self) -> None:
        """Bind on all interfaces and serve until stopped.

        Raises ``ValueError`` for an unknown socket type and ``OSError`` if the
        socket cannot be set up.
        """
        try:
            kind = _SOCKET_KINDS[self.settings.socket_type]
        except KeyError:
            raise ValueError(f"Invalid socket type: {self.settings.socket_type}") from None
        with socket.socket(socket.AF_INET, kind) as sock:
            sock.bind(("", self.settings.port % 65536))
            if kind == socket.SOCK_STREAM:
                sock.listen(MAX_CLIENTS)
            sock.settimeout(_POLL_INTERVAL)
            self.server_address = sock.getsockname()
            _log.info("Server started on port %d", self.server_address[1])
            self.ready.set()
            try:
                while not self._stopped.is_set():
                    if kind == socket.SOCK_STREAM:
                        self._serve_stream_once(sock)
                    else:
                        self._serve_dgram_once(sock)
            finally:
                self.ready.clear()
        _log.info("Server stopped")

    def stop(self) -> None:
        """Ask the serving loop to finish after its current request."""
        self._stopped.set()

    def _serve_stream_once(self, sock: socket.socket) -> None:
        try:
            conn, _ = sock.accept()
        except TimeoutError:
            return
        except OSError as exc:
            _log.error("Accept failed: %s", exc)
            return
        with conn:
            conn.settimeout(None)
            try:
                data = conn.recv(REQUEST_SIZE)
            except OSError as exc:
                _log.error("Recv failed: %s", exc)
                return
            _send(conn.sendall, handle_request(data, self.users_file))

    def _serve_dgram_once(self, sock: socket.socket) -> None:
        try:
            data, addr = sock.recvfrom(REQUEST_SIZE)
        except TimeoutError:
            return
        except OSError as exc:
            _log.error("Recv failed: %s", exc)
            return
        reply = handle_request(data, self.users_file)
        _send(lambda payload: sock.sendto(payload, addr), reply)


def daemonize() -> None:
    """Detach from the terminal: fork, start a new session, drop std streams.

    The parent process exits. Raises ``OSError`` if fork or setsid fails.
    """
    if os.fork() > 0:
        os._exit(0)
    os.setsid()
    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
    finally:
        if devnull > 2:
            os.close(devnull)


def _configure_logging() -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    try:
        handler: logging.Handler = logging.handlers.SysLogHandler(address="/dev/log")
    except OSError:
        handler = logging.StreamHandler()
    root.addHandler(handler)
    root.setLevel(logging.INFO)


def main(argv: Sequence[str] | None = None) -> int:
    """Start the daemon; returns the process exit status."""
    parser = argparse.ArgumentParser(prog="myRPC-daemon", description="Run permitted users' commands.")
    parser.add_argument("--config", default=CONFIG_FILE, help="server configuration file")
    parser.add_argument("--users", default=USERS_FILE, help="file listing permitted users")
    parser.add_argument("--foreground", action="store_true", help="do not detach from the terminal")
    args = parser.parse_args(argv)

    if not args.foreground:
        try:
            daemonize()
        except OSError as exc:
            _log.error("Daemonize failed: %s", exc)
            return 1
    _configure_logging()

    try:
        settings = parse_config(args.config)
    except OSError as exc:
        _log.error("Failed to parse config file: %s", exc)
        return 1

    server = DaemonServer(settings, args.users)

    def _on_signal(signum: int, frame: object) -> None:
        server.stop()

    previous = {sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        server.serve_forever()
    except (OSError, ValueError) as exc:
        _log.error("Server failed: %s", exc)
        return 1
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return 0