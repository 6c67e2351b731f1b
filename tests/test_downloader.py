import os

import pytest

from limavm.downloader import (
    DownloadError,
    Request,
    Sha,
    cache_filename,
    download,
    download_to_guest,
    fetch_sha_from_url,
)
from limavm.host import CommandError

REDIRECT = "https://mirror.example.com/image.qcow2"


class FakeHost:
    def __init__(self, fail=(), sha_output=""):
        self.calls = []
        self.fail = set(fail)
        self.sha_output = sha_output

    def _record(self, method, args):
        self.calls.append((method, args))
        if (method, args[0]) in self.fail:
            raise CommandError("exit status 1", 1)

    def run(self, *args):
        self._record("run", args)

    def run_quiet(self, *args):
        self._record("run_quiet", args)

    def run_interactive(self, *args):
        self._record("run_interactive", args)

    def run_output(self, *args):
        self._record("run_output", args)
        return self.sha_output if args[0] == "sh" else REDIRECT


def test_cache_filename_is_stable_and_distinct(tmp_path):
    first = cache_filename("https://example.com/a", str(tmp_path))
    assert first == cache_filename("https://example.com/a", str(tmp_path))
    assert first != cache_filename("https://example.com/b", str(tmp_path))
    assert os.path.dirname(first) == os.path.join(str(tmp_path), "caches")
    assert len(os.path.basename(first)) == 64


def test_validate_file_script():
    host = FakeHost()
    Sha(digest="sha256:abc", size=256).validate_file(host, "/tmp/dir/file")
    assert host.calls == [
        ("run", ("sh", "-c", 'cd /tmp/dir/ && echo "abc  file" | shasum -a 256 --check --status'))
    ]


def test_validate_download_requires_digest_or_url():
    with pytest.raises(DownloadError, match="one of Digest or URL must be set"):
        Sha().validate_download(FakeHost(), "https://example.com/x", "/tmp/x")


def test_fetch_sha_from_url_trims_output():
    host = FakeHost(sha_output="  deadbeef \n")
    assert fetch_sha_from_url(host, "https://example.com/sums", "file.tar") == "deadbeef"
    script = host.calls[0][1][2]
    assert "grep '  file.tar$'" in script
    assert "{print $1}" in script


def test_fetch_sha_failure():
    host = FakeHost(fail={("run_output", "sh")})
    with pytest.raises(DownloadError, match="error retrieving sha from url"):
        fetch_sha_from_url(host, "https://example.com/sums", "file.tar")


def test_download_uses_cache(tmp_path):
    url = "https://example.com/cached.img"
    target = cache_filename(url, str(tmp_path))
    os.makedirs(os.path.dirname(target))
    open(target, "w").close()
    host = FakeHost()
    assert download(host, Request(url), str(tmp_path)) == target
    assert host.calls == []


def test_download_command_sequence(tmp_path):
    url = "https://example.com/image.qcow2"
    host = FakeHost()
    result = download(host, Request(url), str(tmp_path))
    tmp = result + ".downloading"
    assert host.calls == [
        ("run_quiet", ("mkdir", "-p", os.path.dirname(tmp))),
        ("run_output", ("curl", "-ILs", "-o", "/dev/null", "-w", "%{url_effective}", url)),
        ("run_interactive", ("curl", "-L", "-#", "-C", "-", "-o", tmp, REDIRECT)),
        ("run_quiet", ("mv", tmp, result)),
    ]


def test_download_validates_with_fetched_digest(tmp_path):
    url = "https://example.com/image.qcow2"
    host = FakeHost(sha_output="deadbeef\n")
    result = download(host, Request(url, Sha(url="https://example.com/sums")), str(tmp_path))
    tmp = result + ".downloading"
    run_calls = [args for method, args in host.calls if method == "run"]
    assert len(run_calls) == 1
    assert f'echo "deadbeef  {os.path.basename(tmp)}"' in run_calls[0][2]
    assert host.calls[-1] == ("run_quiet", ("mv", tmp, result))


def test_download_invalid_sha_moves_file(tmp_path):
    url = "https://example.com/image.qcow2"
    host = FakeHost(fail={("run", "sh")})
    with pytest.raises(DownloadError) as info:
        download(host, Request(url, Sha(digest="sha512:abc", size=512)), str(tmp_path))
    message = str(info.value)
    assert f"error downloading '{url}'" in message
    assert "error validating SHA sum for 'image.qcow2'" in message
    tmp = cache_filename(url, str(tmp_path)) + ".downloading"
    assert host.calls[-1] == ("run_quiet", ("mv", tmp, tmp + ".invalid"))


def test_download_cache_dir_failure(tmp_path):
    host = FakeHost(fail={("run_quiet", "mkdir")})
    with pytest.raises(DownloadError, match="error preparing cache dir"):
        download(host, Request("https://example.com/x"), str(tmp_path))


def test_download_to_guest_local_file(tmp_path):
    host, guest = FakeHost(), FakeHost()
    download_to_guest(host, guest, Request("/local/file.img"), "/tmp/dest", str(tmp_path))
    assert host.calls == []
    assert guest.calls == [("run_quiet", ("cp", "/local/file.img", "/tmp/dest"))]


def test_download_to_guest_remote_file(tmp_path):
    url = "https://example.com/image.qcow2"
    host, guest = FakeHost(), FakeHost()
    download_to_guest(host, guest, Request(url), "/tmp/dest", str(tmp_path))
    cached = cache_filename(url, str(tmp_path))
    assert guest.calls == [("run_quiet", ("cp", cached, "/tmp/dest"))]