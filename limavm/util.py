"""Host helpers: home directory, ports, addresses, paths and qemu checks."""

from __future__ import annotations

import ipaddress
import logging
import os
import posixpath
import re
import shlex
import shutil
import socket
from pathlib import Path

log = logging.getLogger(__name__)

_ENV_RE = re.compile(r"\$\{([^}]*)\}|\$([A-Za-z0-9_]+)")


class QemuNotFoundError(RuntimeError):
    """Raised when qemu-img is not available on the host."""


def home_dir() -> str:
    """Return the user home directory."""
    return str(Path.home())


def random_available_port() -> int:
    """Return a TCP port that is currently free on the host."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("", 0))
        return sock.getsockname()[1]


def host_ip_addresses() -> list[ipaddress.IPv4Address]:
    """Return the host's IPv4 addresses, excluding 127.0.0.1."""
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        return []

    addresses: list[ipaddress.IPv4Address] = []
    for *_, sockaddr in infos:
        try:
            address = ipaddress.IPv4Address(sockaddr[0])
        except ValueError:
            continue
        if str(address) != "127.0.0.1" and address not in addresses:
            addresses.append(address)
    return addresses


def shell_split(cmd: str) -> list[str]:
    """Split a command line into arguments, falling back to whitespace."""
    try:
        return shlex.split(cmd)
    except ValueError as exc:
        log.warning("error splitting into args: %s", exc)
        log.warning("falling back to whitespace split")
        return cmd.split()


def _expand_env(text: str) -> str:
    return _ENV_RE.sub(lambda m: os.environ.get(m.group(1) or m.group(2), ""), text)


def clean_path(location: str) -> str:
    """Return the absolute mount path with a trailing slash; '' stays ''."""
    if location == "":
        return ""

    text = _expand_env(location)
    if text.startswith("~"):
        text = text.replace("~", home_dir(), 1)

    text = posixpath.normpath(text)
    if text.startswith("//"):
        text = "/" + text.lstrip("/")
    if not posixpath.isabs(text):
        raise ValueError(f"relative paths not supported for mount '{location}'")

    return text.removesuffix("/") + "/"


def assert_qemu_img() -> str:
    """Return the path of qemu-img, raising QemuNotFoundError when missing."""
    cmd = "qemu-img"
    found = shutil.which(cmd)
    if found is None:
        raise QemuNotFoundError(f"{cmd} not found, run 'brew install qemu' to install")
    return found