"""Updating apt packages inside the guest."""

from __future__ import annotations

import logging
from typing import Any, Iterable

log = logging.getLogger(__name__)


def upgradable_command(packages: Iterable[str]) -> str:
    """Return a shell command that succeeds if any package is upgradable."""
    return "sudo apt list --upgradable | grep" + "".join(f" -e '^{name}/'" for name in packages)


def install_command(packages: Iterable[str]) -> str:
    """Return a shell command that installs the packages with apt."""
    return "sudo apt-get install -y --allow-change-held-packages " + " ".join(packages)


def update_runtime(guest: Any, packages: Iterable[str]) -> bool:
    """Upgrade the packages in the guest; return whether an update happened."""
    names = list(packages)

    log.info("refreshing package manager")
    guest.run_quiet("sh", "-c", "sudo apt-get update -y")

    log.info("checking for updates")
    try:
        guest.run_quiet("sh", "-c", upgradable_command(names))
    except Exception:  # a failing grep means nothing is upgradable
        log.warning("no updates available")
        return False

    log.info("updating packages ...")
    guest.run_quiet("sh", "-c", install_command(names))
    log.info("done")
    return True