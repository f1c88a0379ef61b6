[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netkit"
version = "0.1.0"
description = "Networking primitives for Linux: Internet checksums, wire parsing, IPv4 headers, file descriptors, addresses, sockets, TUN/TAP devices and a poll-based event loop"
requires-python = ">=3.10"
dependencies = []
keywords = ["networking", "ipv4", "checksum", "sockets", "tun", "tap", "event-loop", "poll"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["netkit"]

[tool.pytest.ini_options]
addopts = "-ra"
