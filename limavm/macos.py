"""Detection of the macOS host: version, chip and Rosetta availability."""

from __future__ import annotations

import json
import logging
import platform
import re
import subprocess
import sys

log = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


class MacOSVersionError(RuntimeError):
    """Raised when the macOS product version cannot be determined."""


def _parse_version(text: str) -> tuple[int, int, int]:
    match = _VERSION_RE.match(text)
    if match is None:
        raise ValueError(f"invalid version {text!r}")
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def is_macos() -> bool:
    """Return whether the current OS is macOS."""
    return sys.platform == "darwin"


def macos_product_version() -> tuple[int, int, int]:
    """Return the host's macOS version as (major, minor, patch)."""
    args = ["sw_vers", "-productVersion"]
    try:
        result = subprocess.run(args, capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise MacOSVersionError(f"failed to execute {args}: {exc}") from exc

    # output is like "12.3.1\n", though some releases print just "12.4\n"
    version = result.stdout.strip()
    while version.count(".") < 2:
        version += ".0"
    try:
        return _parse_version(version)
    except ValueError as exc:
        raise MacOSVersionError(f"failed to parse macOS version {version!r}") from exc


def min_macos_version(version: str) -> bool:
    """Return whether the host runs macOS at or above ``version``."""
    if not is_macos():
        return False
    try:
        current = macos_product_version()
    except MacOSVersionError as exc:
        log.warning("error retrieving macOS version: %s", exc)
        return False
    try:
        required = _parse_version(version)
    except ValueError as exc:
        log.warning("error parsing version: %s", exc)
        return False
    return required <= current


def macos13_or_newer() -> bool:
    """Return whether the host runs macOS 13 or newer."""
    return min_macos_version("13.0.0")


def macos13_or_newer_on_arm() -> bool:
    """Return whether the host is an arm64 machine running macOS 13 or newer."""
    return platform.machine() == "arm64" and macos13_or_newer()


def macos15_or_newer() -> bool:
    """Return whether the host runs macOS 15 or newer."""
    return min_macos_version("15.0.0")


def is_mx(x: int) -> bool:
    """Return whether the device is an Apple Silicon M<x> chip."""
    args = ["system_profiler", "-json", "SPHardwareDataType"]
    try:
        result = subprocess.run(args, capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        log.debug("error retrieving chip version: %s", exc)
        return False

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        log.debug("error decoding system_profiler response: %s", exc)
        return False

    entries = data.get("SPHardwareDataType") if isinstance(data, dict) else None
    if not entries:
        return False
    chip_type = str(entries[0].get("chip_type", "")).upper()
    return f"M{x}" in chip_type


def nested_virtualization_supported() -> bool:
    """Return whether the device supports nested virtualization."""
    return (is_mx(3) or is_mx(4)) and macos15_or_newer()


def rosetta_running() -> bool:
    """Return whether the Rosetta daemon process is running."""
    if not is_macos():
        return False
    try:
        result = subprocess.run(
            ["pgrep", "oahd"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError:
        return False
    return result.returncode == 0