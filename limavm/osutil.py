"""Environment variables, executable lookup and unix socket paths."""

from __future__ import annotations

import logging
import os
import shutil
import sys

log = logging.getLogger(__name__)

ENV_BINARY = "COLIMA_BINARY"
"""Environment variable overriding the path of the running executable."""

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}


class EnvVar(str):
    """Name of an environment variable."""

    def exists(self) -> bool:
        """Return whether the variable is set."""
        return str(self) in os.environ

    def as_bool(self) -> bool:
        """Return the value as a boolean; unparsable values are False."""
        return self.val() in _TRUE

    def val(self) -> str:
        """Return the value, or an empty string when unset."""
        return os.environ.get(str(self), "")


def executable() -> str:
    """Return the path of the executable that started the current process."""
    argv0 = sys.argv[0] if sys.argv else ""

    override = os.environ.get(ENV_BINARY, "")
    if override:
        return override

    if os.path.isabs(argv0):
        return argv0

    found = shutil.which(argv0) if argv0 else None
    if found is None:
        log.debug("cannot detect current running executable: '%s' not in PATH", argv0)
        log.debug("falling back to first CLI argument")
        return argv0
    return os.path.abspath(found)


class Socket(str):
    """A unix socket path, with or without the unix:// scheme."""

    def unix(self) -> str:
        """Return the unix:// address of the socket."""
        return "unix://" + self.file()

    def file(self) -> str:
        """Return the file path of the socket."""
        return str(self).removeprefix("unix://")