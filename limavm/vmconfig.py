"""Helpers for building the Lima VM configuration: mounts, ingress and ports."""

from __future__ import annotations

import ipaddress
from itertools import combinations
from typing import Iterable

from limavm.limaconfig import NINEP, REVSSHFS, TCP, VIRTIOFS, VZ, IPAddress, PortForward
from limavm.util import clean_path

_FULL_RANGE = (1, 65535)
_SSH_MOUNT_TYPES = frozenset(
    {"ssh", "sshfs", "reversessh", "reverse-ssh", "reversesshfs", REVSSHFS}
)
_INGRESS_NAMES = frozenset({"traefik", "ingress"})


def check_overlapping_mounts(locations: Iterable[str]) -> None:
    """Raise ValueError if any two mount locations overlap or one is relative."""
    for first, second in combinations(list(locations), 2):
        a = clean_path(first)
        b = clean_path(second)
        if a.startswith(b) or b.startswith(a):
            raise ValueError(f"'{a}' overlaps '{b}'")


def ingress_disabled(flags: Iterable[str]) -> bool:
    """Return whether the k3s flags disable the traefik ingress."""
    items = list(flags)
    for i, flag in enumerate(items):
        if flag == "--disable":
            if i >= len(items) - 1:
                return False
            if items[i + 1] in _INGRESS_NAMES:
                return True
            continue
        key, sep, value = flag.partition("=")
        if not sep or key != "--disable":
            continue
        if value in _INGRESS_NAMES:
            return True
    return False


def resolve_mount_type(requested: str, vm_type: str) -> str:
    """Return the Lima mount type for a requested type and VM type."""
    if requested.lower() in _SSH_MOUNT_TYPES:
        return REVSSHFS
    return VIRTIOFS if vm_type == VZ else NINEP


def default_port_forwards(host_addresses: Iterable[IPAddress] = ()) -> list[PortForward]:
    """Return the port forwards binding 0.0.0.0, 127.0.0.1 and each host address."""
    forwards = [
        PortForward(
            guest_ip_must_be_zero=True,
            guest_ip=ipaddress.ip_address("0.0.0.0"),
            guest_port_range=_FULL_RANGE,
            host_ip=ipaddress.ip_address("0.0.0.0"),
            host_port_range=_FULL_RANGE,
            proto=TCP,
        ),
        PortForward(
            guest_ip=ipaddress.ip_address("127.0.0.1"),
            guest_port_range=_FULL_RANGE,
            host_ip=ipaddress.ip_address("127.0.0.1"),
            host_port_range=_FULL_RANGE,
            proto=TCP,
        ),
    ]
    for address in host_addresses:
        ip = ipaddress.ip_address(str(address))
        forwards.append(
            PortForward(
                guest_ip=ip,
                guest_port_range=_FULL_RANGE,
                host_ip=ip,
                host_port_range=_FULL_RANGE,
                proto=TCP,
            )
        )
    return forwards