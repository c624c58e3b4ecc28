# myrpc

A small service for running shell commands on another host. A client sends a
command together with the name of the local user. The server looks that name
up in a list of allowed users. If the user is on the list, the server runs the
command with `/bin/sh -c` and sends back a result code and the output.

The package has no dependencies outside the standard library. It needs a POSIX
system, because it uses `pwd`, `fork` and `/bin/sh`.

## Installation

```
pip install .
```

## Commands

### `myrpc-client`

```
myrpc-client -c "command" [-h host] [-p port] [-s|-d]
```

- `-c`, `--command`: the shell command to run (required)
- `-h`, `--host`: server IPv4 address (default `127.0.0.1`)
- `-p`, `--port`: server port (default `1234`)
- `-s`, `--stream`: use TCP (the default)
- `-d`, `--dgram`: use UDP
- `--help`: show usage and exit

Unknown arguments are ignored. The client sends `"user":"command"`, where
`user` is the name of the current login. It expects a reply of the form
`code:"output"` and prints:

```
Server response [code 0]:
<output>
```

If the reply does not have that form, the client prints
`Invalid server response: ...`.

### `myrpc-server`

```
myrpc-server [--config PATH] [--users PATH]
```

This runs the server in the foreground and uses the quoted protocol described
above. Settings are read from `--config`, which defaults to
`/etc/myRPC/myRPC.conf`:

```
port = 1234
socket_type = stream
```

Use `socket_type = dgram` for UDP. If the file cannot be read, the server
listens on TCP port 1234.

Allowed user names are read from `--users`, which defaults to
`/etc/myRPC/users.conf`. The file holds one name per line, and lines that
start with `#` are ignored.

The replies are:

- exit status 0: `0:"<stdout>"`
- any other exit status: `1:"<stderr>"`
- a malformed request: `1:"Invalid request format"`
- a user not on the list: `1:"User not allowed"`

The output is cut to 4095 bytes, and also at the first NUL byte.

### `myrpc-daemon`

```
myrpc-daemon [--config PATH] [--users PATH] [--foreground]
```

This reads the same configuration and user files. It detaches into the
background unless `--foreground` is given. If the configuration file cannot be
read, it exits with status 1. It logs to the local syslog socket if there is
one, and to stderr otherwise.

The daemon uses a plain protocol. A request is `user:command` and holds at
most 1023 bytes. The reply is `0:<stdout>`. If the command wrote anything to
stderr, the reply is `1:<stderr>` instead. The daemon stops cleanly on SIGINT
or SIGTERM.

## Library use

- `myrpc.syslog.mysyslog(msg, level, driver, fmt, path)` appends one record to
  a log file. With `fmt=0` the record is plain text,
  `<ctime> <LEVEL> <driver> <msg>`. Any other value of `fmt` gives a JSON
  object. `format_record` builds the line without writing it. `Level` holds
  the severities `DEBUG` to `CRITICAL`. Any other level value is written as
  `UNKNOWN`. The message is inserted as it is, without JSON escaping.
- `myrpc.client_config.parse_client_config(filename)` returns a
  `ClientConfig`. It has the fields `server_ip`, `port`, `socket_type` and
  `timeout_ms`.
- `myrpc.server_config.parse_server_config(filename)` returns a
  `ServerConfig`. It has the fields `port`, `socket_type`, `max_connections`
  and `log_path`.
- Both parsers read `key = value` files, treat `#` as the start of a comment,
  and fall back to the defaults if the file is missing. `validate_client_config`
  and `validate_server_config` raise `ConfigError` when a value is out of range.
- `myrpc.client` provides `parse_args`, `build_request`, `parse_response` and
  `send_command`.
- `myrpc.server` and `myrpc.daemon` each provide `parse_config`,
  `is_user_allowed`, `parse_request`, `handle_request` and `execute_command`.
  These return the reply bytes that would be sent to the client.
  `myrpc.daemon.DaemonServer` can be started with `serve_forever()` and
  stopped with `stop()`.

## Limitations

- The server trusts the user name that the client sends. There is no
  authentication and no encryption.
- The commands do not read `ClientConfig` or `ServerConfig` files. Those
  parsers are library functions only.
- The server and the daemon do not write through `myrpc.syslog`; they use
  Python's `logging`.
- The client sends the quoted protocol, so it talks to `myrpc-server` and not
  to `myrpc-daemon`.