"""Remote shell-command service: client, server, daemon, config parsers and a file logger."""

__version__ = "1.0.0"
__all__ = ["client", "client_config", "daemon", "server", "server_config", "syslog"]