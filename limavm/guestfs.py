"""Settings storage and file information inside the guest VM."""

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

CONFIG_FILE = "/etc/colima/colima.json"
"""Location of the settings file in the guest."""


class GuestSettings:
    """Key/value settings persisted as JSON in the guest."""

    def __init__(self, guest: Any, path: str = CONFIG_FILE) -> None:
        self.guest = guest
        self.path = path

    def _load(self) -> dict[str, str]:
        try:
            text = self.guest.read(self.path)
        except Exception:  # a missing or unreadable file means no settings
            return {}
        try:
            data = json.loads(text)
        except ValueError:
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str:
        """Return the stored value for key, or '' when absent."""
        return self._load().get(key, "")

    def set(self, key: str, value: str) -> None:
        """Store value under key, keeping the other settings."""
        settings = self._load()
        settings[key] = value
        body = json.dumps(settings, sort_keys=True, separators=(",", ":")).encode()
        try:
            self.guest.run("sudo", "mkdir", "-p", posixpath.dirname(self.path))
            self.guest.write(self.path, body)
        except Exception as exc:
            raise RuntimeError(f"error saving settings: {exc}") from exc


@dataclass(frozen=True)
class FileInfo:
    """Information about a file in the guest."""

    name: str
    size: int
    mode: int
    mod_time: datetime
    is_dir: bool


def _to_int(text: str, base: int = 10) -> int:
    try:
        return int(text, base)
    except ValueError:
        return 0


def parse_stat(filename: str, output: str) -> FileInfo:
    """Parse 'size,mode,mtime,type' output of stat into a FileInfo."""
    fields = output.split(",")
    if len(fields) < 4:
        raise OSError(f"cannot stat file: {filename}")
    return FileInfo(
        name=filename,
        size=_to_int(fields[0]),
        mode=_to_int(fields[1], 8),
        mod_time=datetime.fromtimestamp(_to_int(fields[2]), tz=timezone.utc),
        is_dir=fields[3] == "directory",
    )


def stat(guest: Any, filename: str) -> FileInfo:
    """Return information about a file in the guest."""
    try:
        output = guest.run_output("sudo", "stat", "-c", "%s,%a,%Y,%F", filename)
    except Exception as exc:
        raise OSError(f"cannot stat file: {filename}") from exc
    return parse_stat(filename, output)