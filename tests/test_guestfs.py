import json

import pytest

from limavm.guestfs import CONFIG_FILE, GuestSettings, parse_stat, stat


class FakeGuest:
    def __init__(self, files=None, stat_output=None, fail_run=False):
        self.files = dict(files or {})
        self.calls = []
        self.stat_output = stat_output
        self.fail_run = fail_run

    def read(self, name):
        if name not in self.files:
            raise OSError(f"cannot read file: {name}")
        return self.files[name]

    def write(self, name, body):
        self.files[name] = body.decode()

    def run(self, *args):
        self.calls.append(args)
        if self.fail_run:
            raise RuntimeError("boom")

    def run_output(self, *args):
        self.calls.append(args)
        if self.stat_output is None:
            raise RuntimeError("no such file")
        return self.stat_output


def test_get_existing_key():
    guest = FakeGuest({CONFIG_FILE: json.dumps({"runtime": "docker"})})
    assert GuestSettings(guest).get("runtime") == "docker"


def test_get_missing_key_and_file():
    guest = FakeGuest({CONFIG_FILE: json.dumps({"runtime": "docker"})})
    assert GuestSettings(guest).get("other") == ""
    assert GuestSettings(FakeGuest()).get("runtime") == ""


def test_get_invalid_json():
    guest = FakeGuest({CONFIG_FILE: "not json"})
    assert GuestSettings(guest).get("runtime") == ""


def test_set_creates_directory_and_round_trips():
    guest = FakeGuest()
    settings = GuestSettings(guest)
    settings.set("runtime", "containerd")
    assert ("sudo", "mkdir", "-p", "/etc/colima") in guest.calls
    assert settings.get("runtime") == "containerd"
    assert json.loads(guest.files[CONFIG_FILE]) == {"runtime": "containerd"}


def test_set_keeps_other_keys():
    guest = FakeGuest({CONFIG_FILE: json.dumps({"master_address": "127.0.0.1"})})
    settings = GuestSettings(guest)
    settings.set("runtime", "docker")
    assert json.loads(guest.files[CONFIG_FILE]) == {
        "master_address": "127.0.0.1",
        "runtime": "docker",
    }


def test_set_failure_raises():
    guest = FakeGuest(fail_run=True)
    with pytest.raises(RuntimeError, match="error saving settings"):
        GuestSettings(guest).set("runtime", "docker")


def test_parse_stat_directory():
    info = parse_stat("/etc", "4096,755,1700000000,directory")
    assert info.name == "/etc"
    assert info.size == 4096
    assert info.mode == 0o755
    assert info.is_dir is True
    assert info.mod_time.timestamp() == 1700000000


def test_parse_stat_regular_file():
    info = parse_stat("/etc/hosts", "120,644,1700000000,regular file")
    assert info.is_dir is False
    assert info.size == 120


def test_parse_stat_too_few_fields():
    with pytest.raises(OSError, match="cannot stat file: /x"):
        parse_stat("/x", "1,2")


def test_stat_uses_guest_command():
    guest = FakeGuest(stat_output="10,600,1700000000,regular file")
    info = stat(guest, "/tmp/a")
    assert guest.calls == [("sudo", "stat", "-c", "%s,%a,%Y,%F", "/tmp/a")]
    assert info.size == 10


def test_stat_failure():
    with pytest.raises(OSError, match="cannot stat file: /missing"):
        stat(FakeGuest(), "/missing")