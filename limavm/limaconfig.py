"""Lima VM configuration model and YAML serialisation."""

from __future__ import annotations

import ipaddress
import os
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from limavm.environment import Arch

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

TCP = "tcp"

REVSSHFS = "reverse-sshfs"
NINEP = "9p"
VIRTIOFS = "virtiofs"

QEMU = "qemu"
VZ = "vz"

PROVISION_MODE_SYSTEM = "system"
PROVISION_MODE_USER = "user"
PROVISION_MODE_BOOT = "boot"
PROVISION_MODE_DEPENDENCY = "dependency"


def _field(
    key: str,
    *,
    omitempty: bool = False,
    default: Any = MISSING,
    default_factory: Any = MISSING,
    decode: Callable[[Any], Any] | None = None,
) -> Any:
    metadata = {"key": key, "omitempty": omitempty, "decode": decode}
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if is_dataclass(value) and not isinstance(value, type):
        return all(_is_zero(getattr(value, f.name)) for f in fields(value))
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    if isinstance(value, (bool, int, float)):
        return not value
    return False


def _encode(value: Any) -> Any:
    if isinstance(value, _Struct):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return str(value)
    if isinstance(value, Mapping):
        return {str(_encode(k)): _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def _arch(value: Any) -> Arch:
    return Arch(str(value))


def _ip(value: Any) -> IPAddress:
    return ipaddress.ip_address(str(value))


def _ip_list(value: Any) -> list[IPAddress]:
    return [_ip(item) for item in value]


def _port_range(value: Any) -> tuple[int, int]:
    items = [int(item) for item in value]
    if len(items) != 2:
        raise ValueError(f"port range must have 2 elements, got {len(items)}")
    return items[0], items[1]


def _str_map(value: Any) -> dict[str, str]:
    return {str(k): str(v) for k, v in value.items()}


def _str_list(value: Any) -> list[str]:
    return [str(item) for item in value]


def _cpu_type(value: Any) -> dict[Arch, str]:
    return {_arch(k): str(v) for k, v in value.items()}


def _list_of(cls: type[_Struct]) -> Callable[[Any], list[Any]]:
    return lambda value: [cls.from_dict(item) for item in value]


def _struct(cls: type[_Struct]) -> Callable[[Any], Any]:
    return cls.from_dict


class _Struct:
    """Mapping of dataclass fields to YAML keys, honouring omitempty."""

    def to_dict(self) -> dict[str, Any]:
        """Return the YAML mapping for this value."""
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if f.metadata["omitempty"] and _is_zero(value):
                continue
            out[f.metadata["key"]] = _encode(value)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Any:
        """Build a value from a YAML mapping; unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise TypeError(f"expected a mapping for {cls.__name__}, got {type(data).__name__}")
        kwargs: dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            value = data.get(f.metadata["key"])
            if value is None:
                continue
            decode = f.metadata["decode"]
            kwargs[f.name] = decode(value) if decode is not None else value
        return cls(**kwargs)


@dataclass
class File(_Struct):
    """A disk image file."""

    location: str = _field("location", default="", decode=str)
    arch: Arch | None = _field("arch", omitempty=True, default=None, decode=_arch)
    digest: str = _field("digest", omitempty=True, default="", decode=str)


@dataclass
class NineP(_Struct):
    """9p mount options."""

    security_model: str = _field("securityModel", omitempty=True, default="", decode=str)
    protocol_version: str = _field("protocolVersion", omitempty=True, default="", decode=str)
    msize: str = _field("msize", omitempty=True, default="", decode=str)
    cache: str = _field("cache", omitempty=True, default="", decode=str)


@dataclass
class Mount(_Struct):
    """A host directory mounted in the VM."""

    location: str = _field("location", default="", decode=str)
    mount_point: str = _field("mountPoint", omitempty=True, default="", decode=str)
    writable: bool = _field("writable", default=False)
    nine_p: NineP = _field("9p", omitempty=True, default_factory=NineP, decode=_struct(NineP))


@dataclass
class Disk(_Struct):
    """An additional disk attached to the VM."""

    name: str = _field("name", default="", decode=str)
    format: bool | None = _field("format", omitempty=True, default=None)
    fs_type: str | None = _field("fsType", omitempty=True, default=None, decode=str)
    fs_args: list[str] = _field("fsArgs", omitempty=True, default_factory=list, decode=_str_list)


@dataclass
class SSH(_Struct):
    """SSH settings."""

    local_port: int = _field("localPort", omitempty=True, default=0, decode=int)
    load_dot_ssh_pub_keys: bool = _field("loadDotSSHPubKeys", default=False)
    forward_agent: bool = _field("forwardAgent", default=False)


@dataclass
class Containerd(_Struct):
    """Built-in containerd settings."""

    system: bool = _field("system", default=False)
    user: bool = _field("user", default=False)


@dataclass
class Firmware(_Struct):
    """Firmware settings; legacy BIOS is ignored for aarch64."""

    legacy_bios: bool = _field("legacyBIOS", default=False)


@dataclass
class PortForward(_Struct):
    """A port or socket forwarding rule."""

    guest_ip_must_be_zero: bool = _field("guestIPMustBeZero", omitempty=True, default=False)
    guest_ip: IPAddress | None = _field("guestIP", omitempty=True, default=None, decode=_ip)
    guest_port: int = _field("guestPort", omitempty=True, default=0, decode=int)
    guest_port_range: tuple[int, int] | None = _field(
        "guestPortRange", omitempty=True, default=None, decode=_port_range
    )
    guest_socket: str = _field("guestSocket", omitempty=True, default="", decode=str)
    host_ip: IPAddress | None = _field("hostIP", omitempty=True, default=None, decode=_ip)
    host_port: int = _field("hostPort", omitempty=True, default=0, decode=int)
    host_port_range: tuple[int, int] | None = _field(
        "hostPortRange", omitempty=True, default=None, decode=_port_range
    )
    host_socket: str = _field("hostSocket", omitempty=True, default="", decode=str)
    proto: str = _field("proto", omitempty=True, default="", decode=str)
    ignore: bool = _field("ignore", omitempty=True, default=False)


@dataclass
class HostResolver(_Struct):
    """Host DNS resolver settings."""

    enabled: bool = _field("enabled", default=False)
    ipv6: bool = _field("ipv6", omitempty=True, default=False)
    hosts: dict[str, str] = _field("hosts", omitempty=True, default_factory=dict, decode=_str_map)


@dataclass
class Network(_Struct):
    """A VM network; lima, socket and vnl are mutually exclusive."""

    lima: str = _field("lima", omitempty=True, default="", decode=str)
    socket: str = _field("socket", omitempty=True, default="", decode=str)
    vz_nat: bool = _field("vzNAT", omitempty=True, default=False)
    vnl_deprecated: str = _field("vnl", omitempty=True, default="", decode=str)
    switch_port_deprecated: int = _field("switchPort", omitempty=True, default=0, decode=int)
    mac_address: str = _field("macAddress", omitempty=True, default="", decode=str)
    interface: str = _field("interface", omitempty=True, default="", decode=str)
    metric: int = _field("metric", omitempty=True, default=0, decode=int)


@dataclass
class Provision(_Struct):
    """A provisioning script."""

    mode: str = _field("mode", default="", decode=str)
    script: str = _field("script", default="", decode=str)
    skip_resolution: bool = _field(
        "skipDefaultDependencyResolution", omitempty=True, default=False
    )


@dataclass
class Rosetta(_Struct):
    """Rosetta settings."""

    enabled: bool = _field("enabled", default=False)
    bin_fmt: bool = _field("binfmt", default=False)


@dataclass
class Config(_Struct):
    """Lima instance configuration."""

    vm_type: str = _field("vmType", omitempty=True, default="", decode=str)
    arch: Arch | None = _field("arch", omitempty=True, default=None, decode=_arch)
    images: list[File] = _field("images", default_factory=list, decode=_list_of(File))
    cpus: int | None = _field("cpus", omitempty=True, default=None, decode=int)
    memory: str = _field("memory", omitempty=True, default="", decode=str)
    disk: str = _field("disk", omitempty=True, default="", decode=str)
    additional_disks: list[Disk] = _field(
        "additionalDisks", omitempty=True, default_factory=list, decode=_list_of(Disk)
    )
    mounts: list[Mount] = _field("mounts", omitempty=True, default_factory=list, decode=_list_of(Mount))
    mount_type: str = _field("mountType", omitempty=True, default="", decode=str)
    ssh: SSH = _field("ssh", default_factory=SSH, decode=_struct(SSH))
    containerd: Containerd = _field("containerd", default_factory=Containerd, decode=_struct(Containerd))
    env: dict[str, str] = _field("env", omitempty=True, default_factory=dict, decode=_str_map)
    dns: list[IPAddress] = _field("dns", default_factory=list, decode=_ip_list)
    firmware: Firmware = _field("firmware", default_factory=Firmware, decode=_struct(Firmware))
    host_resolver: HostResolver = _field(
        "hostResolver", default_factory=HostResolver, decode=_struct(HostResolver)
    )
    port_forwards: list[PortForward] = _field(
        "portForwards", omitempty=True, default_factory=list, decode=_list_of(PortForward)
    )
    networks: list[Network] = _field(
        "networks", omitempty=True, default_factory=list, decode=_list_of(Network)
    )
    provision: list[Provision] = _field(
        "provision", omitempty=True, default_factory=list, decode=_list_of(Provision)
    )
    cpu_type: dict[Arch, str] = _field("cpuType", omitempty=True, default_factory=dict, decode=_cpu_type)
    rosetta: Rosetta = _field("rosetta", omitempty=True, default_factory=Rosetta, decode=_struct(Rosetta))
    nested_virtualization: bool = _field("nestedVirtualization", omitempty=True, default=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the YAML mapping for this configuration."""
        return super().to_dict()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        """Build a configuration from a YAML mapping; unknown keys are ignored."""
        return super().from_dict(data)


def write_yaml(value: Any, file: str | os.PathLike[str]) -> None:
    """Encode value as YAML and write it to file."""
    try:
        text = yaml.safe_dump(_encode(value), sort_keys=False, default_flow_style=False)
    except yaml.YAMLError as exc:
        raise ValueError(f"error encoding YAML: {exc}") from exc
    path = Path(file)
    path.write_text(text)
    path.chmod(0o644)