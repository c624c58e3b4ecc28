[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "myrpc"
version = "1.0.0"
description = "Small remote shell-command service with a client, a server, a daemon and a file logger"
requires-python = ">=3.10"
dependencies = []
keywords = ["rpc", "remote execution", "shell", "daemon", "syslog"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
myrpc-client = "myrpc.client:main"
myrpc-server = "myrpc.server:main"
myrpc-daemon = "myrpc.daemon:main"

[tool.hatch.build.targets.wheel]
packages = ["myrpc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
