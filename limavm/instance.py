"""Lima instance listings and SSH config rewriting."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

LIMA_STATUS_RUNNING = "Running"
INSTANCE_PREFIX = "colima"


@dataclass
class NetworkInterface:
    """A network attached to a Lima instance."""

    vnl: str = ""
    interface: str = ""


@dataclass
class InstanceInfo:
    """Information about a Lima instance."""

    name: str = ""
    status: str = ""
    arch: str = ""
    cpu: int = 0
    memory: int = 0
    disk: int = 0
    dir: str = ""
    network: list[NetworkInterface] = field(default_factory=list)
    ip_address: str = ""
    runtime: str = ""

    def running(self) -> bool:
        """Return whether the instance is running."""
        return self.status == LIMA_STATUS_RUNNING

    @classmethod
    def from_json(cls, data: str | bytes | Mapping[str, Any]) -> InstanceInfo:
        """Build an instance from limactl's JSON object (text or decoded)."""
        obj = json.loads(data) if isinstance(data, (str, bytes)) else data
        if not isinstance(obj, Mapping):
            raise ValueError("instance JSON must be an object")
        networks = [
            NetworkInterface(vnl=str(n.get("vnl", "")), interface=str(n.get("interface", "")))
            for n in obj.get("network") or []
        ]
        return cls(
            name=str(obj.get("name", "")),
            status=str(obj.get("status", "")),
            arch=str(obj.get("arch", "")),
            cpu=int(obj.get("cpus", 0) or 0),
            memory=int(obj.get("memory", 0) or 0),
            disk=int(obj.get("disk", 0) or 0),
            dir=str(obj.get("dir", "")),
            network=networks,
            ip_address=str(obj.get("address", "")),
            runtime=str(obj.get("runtime", "")),
        )


def parse_instances(output: str) -> list[InstanceInfo]:
    """Parse line-delimited limactl JSON, keeping instances this tool created.

    Low-level network details are dropped from the result.
    """
    instances: list[InstanceInfo] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        try:
            info = InstanceInfo.from_json(line)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"error retrieving instances: {exc}") from exc
        if not info.name.startswith(INSTANCE_PREFIX):
            continue
        info.network = []
        instances.append(info)
    return instances


def runtime_label(runtime: str, kubernetes_enabled: bool) -> str:
    """Return the displayed runtime, with '+k3s' when Kubernetes is enabled."""
    if runtime == "none":
        return "none"
    if runtime not in ("docker", "containerd", "incus"):
        return ""
    return runtime + "+k3s" if kubernetes_enabled else runtime


def replace_ssh_config(conf: str, profile_id: str) -> str:
    """Rewrite every 'Host ' line of an SSH config to name profile_id."""
    lines = conf.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    out = []
    for line in lines:
        line = line.removesuffix("\r")
        if line.startswith("Host "):
            line = "Host " + profile_id
        out.append(line + "\n")
    return "".join(out)