"""Host, guest and container runtime abstractions and architecture handling."""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from enum import Enum
from typing import IO, Any, Callable, Protocol

from limavm.macos import macos13_or_newer

CONTAINER_RUNTIME_KEY = "runtime"
"""Settings key for the container runtime."""


class Arch(str, Enum):
    """CPU architecture of the VM."""

    X8664 = "x86_64"
    AARCH64 = "aarch64"

    def go_arch(self) -> str:
        """Return the amd64/arm64 style name of the architecture."""
        return "amd64" if self is Arch.X8664 else "arm64"

    def __str__(self) -> str:
        return self.value


_ALIASES: dict[str, Arch] = {
    "x86_64": Arch.X8664,
    "amd": Arch.X8664,
    "amd64": Arch.X8664,
    "x86": Arch.X8664,
    "x64": Arch.X8664,
    "aarch64": Arch.AARCH64,
    "arm": Arch.AARCH64,
    "arm64": Arch.AARCH64,
    "m1": Arch.AARCH64,
}


def host_arch() -> Arch:
    """Return the host CPU architecture."""
    machine = platform.machine().lower()
    arch = _ALIASES.get(machine)
    if arch is None:
        raise ValueError(f"unsupported host architecture '{machine}'")
    return arch


def normalize_arch(value: str | Arch) -> Arch:
    """Convert an architecture alias to an Arch, defaulting to the host's."""
    if isinstance(value, Arch):
        return value
    arch = _ALIASES.get(value)
    return arch if arch is not None else host_arch()


def default_vm_type() -> str:
    """Return the default virtual machine type for this host."""
    return "vz" if macos13_or_newer() else "qemu"


def is_none_runtime(runtime: str) -> bool:
    """Return whether the runtime is 'none'."""
    return runtime == "none"


class HostActions(Protocol):
    """Actions performed on the host."""

    def run(self, *args: str) -> None:
        """Run a command, streaming its output."""

    def run_quiet(self, *args: str) -> None:
        """Run a command whilst suppressing its output."""

    def run_output(self, *args: str) -> str:
        """Run a command and return its output."""

    def run_interactive(self, *args: str) -> None:
        """Run a command interactively."""

    def run_with(self, stdin: IO[bytes] | None, stdout: IO[bytes] | None, *args: str) -> None:
        """Run a command with the given stdin and stdout."""

    def read(self, file_name: str) -> str:
        """Return the contents of a file."""

    def write(self, file_name: str, body: bytes) -> None:
        """Write body to a file."""

    def stat(self, file_name: str) -> os.stat_result:
        """Return information about a file."""

    def with_env(self, *env: str) -> HostActions:
        """Return a copy with extra KEY=VALUE environment variables."""

    def with_dir(self, directory: str) -> HostActions:
        """Return a copy with the working directory set."""

    def env(self, name: str) -> str:
        """Return an environment variable on the host."""


class GuestActions(Protocol):
    """Actions performed on the guest VM."""

    def run(self, *args: str) -> None:
        """Run a command, streaming its output."""

    def run_quiet(self, *args: str) -> None:
        """Run a command whilst suppressing its output."""

    def run_output(self, *args: str) -> str:
        """Run a command and return its output."""

    def run_interactive(self, *args: str) -> None:
        """Run a command interactively."""

    def run_with(self, stdin: IO[bytes] | None, stdout: IO[bytes] | None, *args: str) -> None:
        """Run a command with the given stdin and stdout."""

    def read(self, file_name: str) -> str:
        """Return the contents of a file."""

    def write(self, file_name: str, body: bytes) -> None:
        """Write body to a file."""

    def stat(self, file_name: str) -> Any:
        """Return information about a file."""

    def start(self, conf: Any) -> None:
        """Start up the VM."""

    def stop(self, force: bool) -> None:
        """Shut down the VM."""

    def restart(self) -> None:
        """Restart the VM."""

    def ssh(self, working_dir: str, *args: str) -> None:
        """Open an ssh connection to the VM."""

    def created(self) -> bool:
        """Return whether the VM has been created."""

    def running(self) -> bool:
        """Return whether the VM is running."""

    def env(self, name: str) -> str:
        """Return an environment variable in the VM."""

    def get(self, key: str) -> str:
        """Return a stored setting in the VM."""

    def set(self, key: str, value: str) -> None:
        """Store a setting in the VM."""

    def user(self) -> str:
        """Return the username inside the VM."""

    def arch(self) -> Arch:
        """Return the architecture of the VM."""


class Container(Protocol):
    """A container runtime environment."""

    def name(self) -> str:
        """Return the runtime name."""

    def provision(self) -> None:
        """Install the runtime; idempotent."""

    def start(self) -> None:
        """Start the runtime."""

    def stop(self) -> None:
        """Stop the runtime."""

    def teardown(self) -> None:
        """Uninstall the runtime."""

    def update(self) -> bool:
        """Update the runtime, returning whether anything changed."""

    def version(self) -> str:
        """Return the runtime version."""

    def running(self) -> bool:
        """Return whether the runtime is running."""

    def dependencies(self) -> list[str]:
        """Return executables that must exist on the host."""


ContainerFactory = Callable[[HostActions, GuestActions], Container]


@dataclass(frozen=True)
class _RuntimeEntry:
    factory: ContainerFactory
    hidden: bool


_container_runtimes: dict[str, _RuntimeEntry] = {}


def register_container(name: str, factory: ContainerFactory, hidden: bool) -> None:
    """Register a container runtime; hidden runtimes are not listed."""
    if name in _container_runtimes:
        raise ValueError(f"container runtime '{name}' already registered")
    _container_runtimes[name] = _RuntimeEntry(factory, hidden)


def new_container(runtime: str, host: HostActions, guest: GuestActions) -> Container:
    """Create a container environment for the named runtime."""
    entry = _container_runtimes.get(runtime)
    if entry is None:
        raise ValueError(f"unsupported container runtime '{runtime}'")
    return entry.factory(host, guest)


def container_runtimes() -> list[str]:
    """Return the names of the visible container runtimes."""
    return sorted(name for name, entry in _container_runtimes.items() if not entry.hidden)