"""Command-line client that asks the server to run a shell command."""

from __future__ import annotations

import logging
import os
import pwd
import re
import socket
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from myrpc.client_config import _atoi

__all__ = [
    "ClientOptions",
    "UsageError",
    "parse_args",
    "help_text",
    "build_request",
    "parse_response",
    "send_command",
    "main",
]

_log = logging.getLogger(__name__)

BUFFER_SIZE = 4096
DEFAULT_PORT = 1234
DEFAULT_HOST = "127.0.0.1"

_SOCKET_KINDS = {"stream": socket.SOCK_STREAM, "dgram": socket.SOCK_DGRAM}
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")


class UsageError(Exception):
    """The command line is missing something required."""


@dataclass
class ClientOptions:
    """What the command line asked for."""

    command: str | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    socket_type: str = "stream"
    show_help: bool = False


def help_text() -> str:
    """Return the usage message, ending with a newline."""
    return (
        'Usage: myRPC-client -c "command" [-h host] [-p port] [-s|-d]\n'
        "Options:\n"
        '  -c, --command "cmd"  Bash command to execute\n'
        f"  -h, --host addr     Server IP (default: {DEFAULT_HOST})\n"
        f"  -p, --port num      Server port (default: {DEFAULT_PORT})\n"
        "  -s, --stream        Use stream socket (TCP)\n"
        "  -d, --dgram        Use datagram socket (UDP)\n"
        "  --help              Show this help\n"
    )


def parse_args(argv: Sequence[str]) -> ClientOptions:
    """Parse client arguments; unknown ones are ignored.

    ``--help`` stops parsing at once. Raises ``UsageError`` if no command is given.
    """
    options = ClientOptions()
    args = iter(argv)
    for arg in args:
        if arg in ("-c", "--command"):
            value = next(args, None)
            if value is not None:
                options.command = value
        elif arg in ("-h", "--host"):
            value = next(args, None)
            if value is not None:
                options.host = value
        elif arg in ("-p", "--port"):
            value = next(args, None)
            if value is not None:
                options.port = _atoi(value)
        elif arg in ("-s", "--stream"):
            options.socket_type = "stream"
        elif arg in ("-d", "--dgram"):
            options.socket_type = "dgram"
        elif arg == "--help":
            options.show_help = True
            return options
    if options.command is None:
        raise UsageError("Command is required")
    return options


def build_request(username: str, command: str) -> bytes:
    """Encode a request as ``"user":"command"``, cut to fit one buffer."""
    message = f'"{username}":"{command}"'.encode("utf-8", "surrogateescape")
    return message[: BUFFER_SIZE - 1]


def parse_response(data: bytes) -> tuple[int, str | None]:
    """Split a ``code:"output"`` reply into the code and the output.

    The output is ``None`` when the reply carries none. Raises ``ValueError``
    if the reply has no leading code or no quote.
    """
    text = data.split(b"\0", 1)[0].decode("utf-8", "replace")
    match = _LEADING_INT.match(text)
    quote = text.find('"')
    if match is None or quote < 0:
        raise ValueError(f"Invalid server response: {text}")
    token = text[quote + 1 :].lstrip('"').split('"', 1)[0]
    return int(match.group(1)), token or None


def send_command(host: str, port: int, socket_type: str, message: bytes) -> bytes:
    """Send one request to the server and return its reply.

    Raises ``ValueError`` for a bad address or socket type and ``OSError``
    for network failures.
    """
    try:
        kind = _SOCKET_KINDS[socket_type]
    except KeyError:
        raise ValueError(f"Invalid socket type: {socket_type}") from None
    try:
        socket.inet_pton(socket.AF_INET, host)
    except OSError:
        raise ValueError("Invalid address / Address not supported") from None
    with socket.socket(socket.AF_INET, kind) as sock:
        sock.connect((host, port % 65536))
        sock.sendall(message)
        return sock.recv(BUFFER_SIZE)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the client; returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        options = parse_args(argv)
    except UsageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(help_text(), end="")
        return 1
    if options.show_help:
        print(help_text(), end="")
        return 0

    try:
        username = pwd.getpwuid(os.getuid()).pw_name
    except KeyError:
        _log.error("Failed to get username")
        return 1

    message = build_request(username, options.command or "")
    try:
        reply = send_command(options.host, options.port, options.socket_type, message)
    except ValueError as exc:
        _log.error("%s", exc)
        return 1
    except OSError as exc:
        _log.error("Request failed: %s", exc)
        return 1

    try:
        code, output = parse_response(reply)
    except ValueError:
        text = reply.split(b"\0", 1)[0].decode("utf-8", "replace")
        print(f"Invalid server response: {text}")
        return 0
    print(f"Server response [code {code}]:\n{output if output is not None else 'No output'}")
    return 0