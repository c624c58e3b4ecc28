import contextlib
import os
import pwd
import socket
import threading

import pytest

from myrpc.client import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    ClientOptions,
    UsageError,
    build_request,
    help_text,
    main,
    parse_args,
    parse_response,
    send_command,
)


@contextlib.contextmanager
def _one_shot_tcp(reply):
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    received = []

    def run():
        conn, _ = srv.accept()
        with conn:
            received.append(conn.recv(4096))
            conn.sendall(reply)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    try:
        yield srv.getsockname()[1], received
    finally:
        thread.join(2)
        srv.close()


def test_parse_args_full():
    opts = parse_args(["-c", "ls", "-h", "10.0.0.1", "-p", "99", "-d"])
    assert opts == ClientOptions("ls", "10.0.0.1", 99, "dgram", False)


def test_parse_args_defaults():
    opts = parse_args(["--command", "uptime"])
    assert opts.host == DEFAULT_HOST
    assert opts.port == DEFAULT_PORT
    assert opts.socket_type == "stream"


def test_parse_args_last_socket_flag_wins():
    assert parse_args(["-c", "a", "-d", "-s"]).socket_type == "stream"


def test_parse_args_bad_port_is_zero():
    assert parse_args(["-c", "a", "-p", "abc"]).port == 0


def test_parse_args_trailing_option_without_value_keeps_default():
    assert parse_args(["-c", "a", "-p"]).port == DEFAULT_PORT


def test_parse_args_help_stops_parsing():
    opts = parse_args(["--help", "-c", "ls"])
    assert opts.show_help is True
    assert opts.command is None


def test_parse_args_missing_command():
    with pytest.raises(UsageError):
        parse_args(["-h", "127.0.0.1"])


def test_help_text_mentions_usage_and_defaults():
    text = help_text()
    assert text.startswith("Usage: myRPC-client")
    assert str(DEFAULT_PORT) in text
    assert DEFAULT_HOST in text


def test_build_request_format():
    assert build_request("alice", "ls -l") == b'"alice":"ls -l"'


def test_build_request_truncated():
    assert len(build_request("bob", "x" * 10000)) == 4095


def test_parse_response_ok():
    assert parse_response(b'0:"hello\n"') == (0, "hello\n")


def test_parse_response_empty_output():
    assert parse_response(b'1:""') == (1, None)


def test_parse_response_stops_at_nul():
    assert parse_response(b'0:"ab"\0junk') == (0, "ab")


@pytest.mark.parametrize("data", [b"garbage", b'"no code"', b"5:no quote"])
def test_parse_response_invalid(data):
    with pytest.raises(ValueError):
        parse_response(data)


def test_send_command_invalid_host():
    with pytest.raises(ValueError):
        send_command("not-an-ip", 1234, "stream", b"x")


def test_send_command_invalid_socket_type():
    with pytest.raises(ValueError):
        send_command("127.0.0.1", 1234, "raw", b"x")


def test_send_command_tcp_round_trip():
    with _one_shot_tcp(b'0:"done"') as (port, received):
        reply = send_command("127.0.0.1", port, "stream", b'"u":"cmd"')
    assert reply == b'0:"done"'
    assert received == [b'"u":"cmd"']


def test_send_command_udp_round_trip():
    srv = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    srv.bind(("127.0.0.1", 0))
    port = srv.getsockname()[1]
    received = []

    def run():
        data, addr = srv.recvfrom(4096)
        received.append(data)
        srv.sendto(b'0:"udp"', addr)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    try:
        reply = send_command("127.0.0.1", port, "dgram", b'"u":"c"')
    finally:
        thread.join(2)
        srv.close()
    assert reply == b'0:"udp"'
    assert received == [b'"u":"c"']


def test_main_help(capsys):
    assert main(["--help"]) == 0
    assert capsys.readouterr().out == help_text()


def test_main_without_command(capsys):
    assert main([]) == 1
    captured = capsys.readouterr()
    assert "Command is required" in captured.err
    assert captured.out == help_text()


def test_main_invalid_host():
    assert main(["-c", "ls", "-h", "bogus"]) == 1


def test_main_prints_server_output(capsys):
    username = pwd.getpwuid(os.getuid()).pw_name
    with _one_shot_tcp(b'0:"hi\n"') as (port, received):
        status = main(["-c", "echo hi", "-p", str(port)])
    assert status == 0
    assert received == [build_request(username, "echo hi")]
    assert capsys.readouterr().out == "Server response [code 0]:\nhi\n\n"


def test_main_invalid_reply(capsys):
    with _one_shot_tcp(b"nonsense") as (port, _):
        status = main(["-c", "ls", "-p", str(port)])
    assert status == 0
    assert capsys.readouterr().out == "Invalid server response: nonsense\n"