import os
import stat
import sys

import pytest

from limavm.osutil import ENV_BINARY, EnvVar, Socket, executable


def test_env_exists(monkeypatch):
    monkeypatch.setenv("LIMAVM_TEST_VAR", "")
    assert EnvVar("LIMAVM_TEST_VAR").exists() is True
    monkeypatch.delenv("LIMAVM_TEST_VAR")
    assert EnvVar("LIMAVM_TEST_VAR").exists() is False


@pytest.mark.parametrize("value", ["1", "t", "T", "true", "TRUE", "True"])
def test_env_bool_true(monkeypatch, value):
    monkeypatch.setenv("LIMAVM_TEST_VAR", value)
    assert EnvVar("LIMAVM_TEST_VAR").as_bool() is True


@pytest.mark.parametrize("value", ["0", "false", "yes", "", "tRuE"])
def test_env_bool_false(monkeypatch, value):
    monkeypatch.setenv("LIMAVM_TEST_VAR", value)
    assert EnvVar("LIMAVM_TEST_VAR").as_bool() is False


def test_env_val(monkeypatch):
    monkeypatch.setenv("LIMAVM_TEST_VAR", "hello")
    assert EnvVar("LIMAVM_TEST_VAR").val() == "hello"
    monkeypatch.delenv("LIMAVM_TEST_VAR")
    assert EnvVar("LIMAVM_TEST_VAR").val() == ""


def test_socket_file_and_unix():
    assert Socket("unix:///tmp/a.sock").file() == "/tmp/a.sock"
    assert Socket("/tmp/a.sock").file() == "/tmp/a.sock"
    assert Socket("/tmp/a.sock").unix() == "unix:///tmp/a.sock"
    assert Socket("unix:///tmp/a.sock").unix() == "unix:///tmp/a.sock"


def test_executable_env_override(monkeypatch):
    monkeypatch.setenv(ENV_BINARY, "/opt/bin/tool")
    assert executable() == "/opt/bin/tool"


def test_executable_absolute_argv(monkeypatch):
    monkeypatch.delenv(ENV_BINARY, raising=False)
    monkeypatch.setattr(sys, "argv", ["/usr/local/bin/tool", "start"])
    assert executable() == "/usr/local/bin/tool"


def test_executable_path_lookup(monkeypatch, tmp_path):
    script = tmp_path / "mytool"
    script.write_text("#!/bin/sh\n")
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    monkeypatch.delenv(ENV_BINARY, raising=False)
    monkeypatch.setenv("PATH", str(tmp_path))
    monkeypatch.setattr(sys, "argv", ["mytool"])
    assert executable() == os.path.abspath(str(script))


def test_executable_fallback(monkeypatch, tmp_path):
    monkeypatch.delenv(ENV_BINARY, raising=False)
    monkeypatch.setenv("PATH", str(tmp_path))
    monkeypatch.setattr(sys, "argv", ["absent-tool"])
    assert executable() == "absent-tool"