"""Running commands and accessing files on the host."""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, replace
from functools import partial
from pathlib import Path
from typing import IO, Any, Iterable

from limavm.terminal import VerboseWriter

log = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when a command fails to start or exits unsuccessfully."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class DependencyError(RuntimeError):
    """Raised when required executables are missing on the host."""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def format_command_error(args: Iterable[str], stderr: str, error: str) -> str:
    """Describe a failed command using the first line of its error output."""
    first_line = stderr.split("\n", 1)[0]
    joined = " ".join(args)
    return f"error running [{joined}], output: {_quote(first_line)}, err: {_quote(str(error))}"


def _exit_message(returncode: int) -> str:
    if returncode < 0:
        return f"signal: {-returncode}"
    return f"exit status {returncode}"


def _has_fileno(stream: Any) -> bool:
    try:
        stream.fileno()
    except (AttributeError, OSError, ValueError):
        return False
    return True


def _require(args: tuple[str, ...]) -> list[str]:
    if not args:
        raise ValueError("args not specified")
    return list(args)


@dataclass(frozen=True)
class HostEnv:
    """The host environment, with extra variables and a working directory."""

    env_vars: tuple[str, ...] = ()
    directory: str = ""
    verbose: bool = False

    def with_env(self, *args: str) -> HostEnv:
        """Return a copy with the KEY=VALUE variables appended."""
        return replace(self, env_vars=self.env_vars + tuple(args))

    def with_dir(self, directory: str) -> HostEnv:
        """Return a copy with the working directory set."""
        return replace(self, directory=directory)

    def _environ(self) -> dict[str, str]:
        environ = dict(os.environ)
        for item in self.env_vars:
            key, _, value = item.partition("=")
            environ[key] = value
        return environ

    def _cwd(self) -> str | None:
        return self.directory or None

    def _capture(self, argv: list[str], **kwargs: Any) -> subprocess.CompletedProcess[bytes]:
        log.debug("cmd %s", argv)
        try:
            result = subprocess.run(
                argv, env=self._environ(), cwd=self._cwd(), stderr=subprocess.PIPE, check=False, **kwargs
            )
        except OSError as exc:
            raise CommandError(format_command_error(argv, "", str(exc))) from exc
        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace")
            raise CommandError(
                format_command_error(argv, stderr, _exit_message(result.returncode)),
                result.returncode,
            )
        return result

    def run(self, *args: str) -> None:
        """Run a command, tailing its output on the terminal."""
        argv = _require(args)
        out = VerboseWriter(-1 if self.verbose else 6)
        log.debug("cmd %s", argv)
        try:
            proc = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=self._environ(),
                cwd=self._cwd(),
            )
        except OSError as exc:
            raise CommandError(str(exc)) from exc
        with proc:
            assert proc.stdout is not None
            for chunk in iter(partial(proc.stdout.read1, 65536), b""):
                out.write(chunk)
            returncode = proc.wait()
        if returncode != 0:
            raise CommandError(_exit_message(returncode), returncode)
        out.close()

    def run_quiet(self, *args: str) -> None:
        """Run a command whilst suppressing its output."""
        self._capture(_require(args), stdout=subprocess.DEVNULL)

    def run_output(self, *args: str) -> str:
        """Run a command and return its trimmed standard output."""
        result = self._capture(_require(args), stdout=subprocess.PIPE)
        return result.stdout.decode(errors="replace").strip()

    def run_interactive(self, *args: str) -> None:
        """Run a command attached to the current terminal."""
        argv = _require(args)
        log.debug("cmd %s", argv)
        try:
            result = subprocess.run(argv, env=self._environ(), cwd=self._cwd(), check=False)
        except OSError as exc:
            raise CommandError(str(exc)) from exc
        if result.returncode != 0:
            raise CommandError(_exit_message(result.returncode), result.returncode)

    def run_with(self, stdin: Any, stdout: Any, *args: str) -> None:
        """Run a command reading from stdin and writing to stdout."""
        argv = _require(args)
        kwargs: dict[str, Any] = {}

        if stdin is None:
            kwargs["stdin"] = subprocess.DEVNULL
        elif _has_fileno(stdin):
            kwargs["stdin"] = stdin
        else:
            data = stdin.read()
            kwargs["input"] = data.encode() if isinstance(data, str) else data

        capture_to = None
        if stdout is None:
            kwargs["stdout"] = subprocess.DEVNULL
        elif _has_fileno(stdout):
            kwargs["stdout"] = stdout
        else:
            kwargs["stdout"] = subprocess.PIPE
            capture_to = stdout

        result = self._capture(argv, **kwargs)
        if capture_to is not None and result.stdout:
            try:
                capture_to.write(result.stdout)
            except TypeError:
                capture_to.write(result.stdout.decode(errors="replace"))

    def env(self, name: str) -> str:
        """Return a host environment variable, or '' when unset."""
        return os.environ.get(name, "")

    def read(self, file_name: str) -> str:
        """Return the contents of a file."""
        return Path(file_name).read_text()

    def write(self, file_name: str, body: bytes) -> None:
        """Write body to a file."""
        path = Path(file_name)
        path.write_bytes(body)
        path.chmod(0o644)

    def stat(self, file_name: str) -> os.stat_result:
        """Return information about a file."""
        return os.stat(file_name)


def is_installed(dependencies: Any) -> None:
    """Raise DependencyError unless every dependency is on the PATH.

    ``dependencies`` is either an object with a ``dependencies()`` method or
    an iterable of executable names.
    """
    names = dependencies.dependencies() if hasattr(dependencies, "dependencies") else dependencies
    missing = [name for name in names if shutil.which(name) is None]
    if missing:
        raise DependencyError(
            f"{', '.join(missing)} not found, run 'brew install {' '.join(missing)}' to install"
        )