"""Docker daemon configuration inside the guest: daemon.json, proxies and host gateway."""

from __future__ import annotations

import ipaddress
import json
import os
from dataclasses import dataclass
from typing import Any, Mapping

DAEMON_FILE = "/etc/docker/daemon.json"
HOST_GATEWAY_IP_KEY = "host-gateway-ip"

SYSTEMD_UNIT_FILENAME = "/etc/systemd/system/docker.service.d/docker.conf"
SYSTEMD_UNIT_FILE_CONTENT = """
[Service]
LimitNOFILE=infinity
ExecStart=
ExecStart=/usr/bin/dockerd -H fd:// --containerd=/run/containerd/containerd.sock --host-gateway-ip=%s
"""

_HOST_GATEWAY_SCRIPT = "grep 'host.lima.internal' /etc/hosts | awk -F' ' '{print $1}'"
_CGROUP_OPT = "native.cgroupdriver=cgroupfs"


class DockerError(RuntimeError):
    """Raised when configuring docker in the guest fails."""


@dataclass(frozen=True)
class ProxyVars:
    """Proxy settings for the docker daemon."""

    http: str = ""
    https: str = ""
    no: str = ""

    def empty(self) -> bool:
        """Return whether neither an http nor an https proxy is set."""
        return self.http == "" and self.https == ""


def _proxy_value(key: str, env: Mapping[str, str], environ: Mapping[str, str]) -> str:
    for name in (key, key.upper()):
        if name in env:
            return env[name]
        value = environ.get(name, "")
        if value:
            return value
    return ""


def proxy_env_vars(env: Mapping[str, str] | None, environ: Mapping[str, str] | None = None) -> ProxyVars:
    """Collect proxy variables from the config env, falling back to the process environment.

    Both lower and upper case names are looked up, lower case first.
    """
    env = env or {}
    environ = os.environ if environ is None else environ
    return ProxyVars(
        http=_proxy_value("http_proxy", env, environ),
        https=_proxy_value("https_proxy", env, environ),
        no=_proxy_value("no_proxy", env, environ),
    )


def host_gateway_ip(guest: Any, conf: Mapping[str, Any] | None) -> str:
    """Return the host gateway IP address, preferring a user-set string value."""
    try:
        ip = guest.run_output("sh", "-c", _HOST_GATEWAY_SCRIPT)
    except Exception as exc:
        raise DockerError(f"error retrieving host gateway IP address: {exc}") from exc

    user_value = (conf or {}).get(HOST_GATEWAY_IP_KEY)
    if isinstance(user_value, str):
        ip = user_value

    try:
        ipaddress.ip_address(ip)
    except ValueError as exc:
        raise DockerError(f"invalid host gateway IP address: '{ip}'") from exc
    return ip


def create_daemon_file(
    guest: Any, conf: Mapping[str, Any] | None, env: Mapping[str, str] | None
) -> dict[str, Any]:
    """Write daemon.json to the guest and return the configuration written."""
    daemon: dict[str, Any] = dict(conf or {})

    # enable buildkit unless set by the user
    daemon.setdefault("features", {"buildkit": True})

    # cgroupfs is required by k3s
    if "exec-opts" not in daemon:
        daemon["exec-opts"] = [_CGROUP_OPT]
    elif isinstance(daemon["exec-opts"], list):
        daemon["exec-opts"] = [*daemon["exec-opts"], _CGROUP_OPT]

    # the host gateway is set through the systemd unit instead
    daemon.pop(HOST_GATEWAY_IP_KEY, None)

    proxies = proxy_env_vars(env)
    if not proxies.empty():
        gateway = host_gateway_ip(guest, daemon)
        proxy_conf: dict[str, str] = {}
        if proxies.http:
            proxy_conf["http-proxy"] = proxies.http.replace("127.0.0.1", gateway)
        if proxies.https:
            proxy_conf["https-proxy"] = proxies.https.replace("127.0.0.1", gateway)
        if proxies.no:
            proxy_conf["no-proxy"] = proxies.no.replace("127.0.0.1", gateway)
        daemon["proxies"] = proxy_conf

    try:
        body = json.dumps(daemon, indent=2, sort_keys=True).encode()
    except (TypeError, ValueError) as exc:
        raise DockerError(f"error marshaling daemon.json: {exc}") from exc
    guest.write(DAEMON_FILE, body)
    return daemon


def add_host_gateway(guest: Any, conf: Mapping[str, Any] | None) -> None:
    """Write the systemd unit override that sets the host gateway IP."""
    ip = host_gateway_ip(guest, conf)
    content = SYSTEMD_UNIT_FILE_CONTENT % ip
    try:
        guest.write(SYSTEMD_UNIT_FILENAME, content.encode())
    except Exception as exc:
        raise DockerError(f"error creating systemd unit file: {exc}") from exc


def reload_and_restart_systemd_service(guest: Any) -> None:
    """Reload systemd and restart docker in the guest."""
    try:
        guest.run("sudo", "systemctl", "daemon-reload")
    except Exception as exc:
        raise DockerError(f"error reloading systemd daemon: {exc}") from exc
    try:
        guest.run("sudo", "systemctl", "restart", "docker")
    except Exception as exc:
        raise DockerError(f"error restarting docker: {exc}") from exc