import pytest

from myrpc.client_config import ConfigError
from myrpc.server_config import (
    ServerConfig,
    parse_server_config,
    validate_server_config,
)


def _write(tmp_path, text):
    path = tmp_path / "server.conf"
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path):
    config = parse_server_config(tmp_path / "absent.conf")
    assert config == ServerConfig()
    assert config.port == 8080
    assert config.socket_type == "stream"
    assert config.max_connections == 10
    assert config.log_path == "/var/log/myrpc.log"


def test_parse_all_keys(tmp_path):
    path = _write(
        tmp_path,
        "port = 1234\nsocket_type = dgram\nmax_connections = 3\nlog_path = /tmp/x.log\n",
    )
    assert parse_server_config(path) == ServerConfig(1234, "dgram", 3, "/tmp/x.log")


def test_comment_stripped_from_value(tmp_path):
    path = _write(tmp_path, "log_path = /srv/rpc.log  # where logs go\n")
    assert parse_server_config(path).log_path == "/srv/rpc.log"


def test_value_may_contain_equals(tmp_path):
    path = _write(tmp_path, "log_path = /tmp/a=b.log\n")
    assert parse_server_config(path).log_path == "/tmp/a=b.log"


def test_log_path_truncated(tmp_path):
    long_path = "/" + "d" * 300
    path = _write(tmp_path, f"log_path = {long_path}\n")
    assert parse_server_config(path).log_path == long_path[:255]


def test_unknown_and_malformed_lines_ignored(tmp_path):
    path = _write(tmp_path, "timeout_ms = 5\njust words\n\n#x=1\n")
    assert parse_server_config(path) == ServerConfig()


def test_default_config_is_valid():
    validate_server_config(ServerConfig())
    assert ServerConfig().max_connections == 10


@pytest.mark.parametrize(
    "changes, fragment",
    [
        ({"port": 0}, "Invalid port number"),
        ({"port": 70000}, "Invalid port number"),
        ({"socket_type": "seqpacket"}, "Invalid socket type"),
        ({"max_connections": 0}, "Invalid max connections"),
    ],
)
def test_validation_errors(changes, fragment):
    with pytest.raises(ConfigError, match=fragment):
        validate_server_config(ServerConfig(**changes))


def test_parsed_invalid_port_rejected(tmp_path):
    path = _write(tmp_path, "port = -5\n")
    config = parse_server_config(path)
    assert config.port == -5
    with pytest.raises(ConfigError):
        validate_server_config(config)