"""Cached file downloads with optional SHA validation."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass, replace
from typing import Any

from limavm.host import CommandError
from limavm.shautil import sha256
from limavm.terminal import clear_line

_FAILURES = (CommandError, OSError, ValueError, RuntimeError)


class DownloadError(RuntimeError):
    """Raised when a download or its validation fails."""


def fetch_sha_from_url(host: Any, url: str, filename: str) -> str:
    """Fetch the digest for filename from a shasum listing at url."""
    script = f"curl -sL {url} | grep '  {filename}$' | awk -F' ' '{{print $1}}'"
    try:
        output = host.run_output("sh", "-c", script)
    except _FAILURES as exc:
        raise DownloadError(f"error retrieving sha from url '{url}': {exc}") from exc
    return output.strip()


@dataclass(frozen=True)
class Sha:
    """Expected SHA sum of a file: a digest, or a URL to fetch it from."""

    digest: str = ""
    url: str = ""
    size: int = 256

    def validate_file(self, host: Any, file: str) -> None:
        """Check the file against the digest using shasum on the host."""
        directory, filename = file[: file.rfind("/") + 1], file[file.rfind("/") + 1 :]
        digest = self.digest.removeprefix(f"sha{self.size}:")
        script = (
            f'cd {directory} && echo "{digest}  {filename}" '
            f"| shasum -a {self.size} --check --status"
        )
        host.run("sh", "-c", script)

    def validate_download(self, host: Any, url: str, filename: str) -> None:
        """Validate a file downloaded from url, fetching the digest if needed."""
        if not self.url and not self.digest:
            raise DownloadError("error validating SHA: one of Digest or URL must be set")

        sha = self
        if not sha.digest:
            name = url.split("/")[-1] if url else ""
            sha = replace(sha, digest=fetch_sha_from_url(host, sha.url, name))

        sha.validate_file(host, filename)


@dataclass(frozen=True)
class Request:
    """A download request."""

    url: str
    sha: Sha | None = None


def cache_filename(url: str, cache_dir: str) -> str:
    """Return the cache path for a URL."""
    return os.path.join(cache_dir, "caches", str(sha256(url)))


def _download_file(host: Any, request: Request, cache_dir: str) -> None:
    # download to a temporary name first so an interrupted download is never cached
    final = cache_filename(request.url, cache_dir)
    downloading = final + ".downloading"

    try:
        host.run_quiet("mkdir", "-p", os.path.dirname(downloading))
    except _FAILURES as exc:
        raise DownloadError(f"error preparing cache dir: {exc}") from exc

    # resolve the redirect first to avoid curl's initial progress bar
    try:
        download_url = host.run_output(
            "curl", "-ILs", "-o", "/dev/null", "-w", "%{url_effective}", request.url
        )
    except _FAILURES as exc:
        raise DownloadError(f"error retrieving redirect url: {exc}") from exc

    # resume a previous partial download where possible
    host.run_interactive("curl", "-L", "-#", "-C", "-", "-o", downloading, download_url)
    clear_line()

    if request.sha is not None:
        try:
            request.sha.validate_download(host, request.url, downloading)
        except _FAILURES as exc:
            try:
                host.run_quiet("mv", downloading, downloading + ".invalid")
            except _FAILURES:
                pass
            raise DownloadError(
                f"error validating SHA sum for '{posixpath.basename(request.url)}': {exc}"
            ) from exc

    host.run_quiet("mv", downloading, final)


def download(host: Any, request: Request, cache_dir: str) -> str:
    """Download the request's URL unless cached; return the cached file path."""
    target = cache_filename(request.url, cache_dir)
    if not os.path.exists(target):
        try:
            _download_file(host, request, cache_dir)
        except _FAILURES as exc:
            raise DownloadError(f"error downloading '{request.url}': {exc}") from exc
    return target


def download_to_guest(host: Any, guest: Any, request: Request, filename: str, cache_dir: str) -> None:
    """Download via the host cache and copy the file to filename on the guest."""
    if request.url.startswith("/"):
        guest.run_quiet("cp", request.url, filename)
        return

    cached = download(host, request, cache_dir)
    guest.run_quiet("cp", cached, filename)