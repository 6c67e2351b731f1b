import io

import pytest

from limavm.host import (
    CommandError,
    DependencyError,
    HostEnv,
    format_command_error,
    is_installed,
)


def test_format_command_error_uses_first_line():
    message = format_command_error(["ls", "-l"], "first\nsecond\n", "exit status 2")
    assert message == 'error running [ls -l], output: "first", err: "exit status 2"'


def test_run_output_trims():
    assert HostEnv().run_output("echo", "  hello  ") == "hello"


def test_run_without_args_raises():
    with pytest.raises(ValueError, match="args not specified"):
        HostEnv().run_output()


def test_run_quiet_failure_reports_stderr():
    with pytest.raises(CommandError) as info:
        HostEnv().run_quiet("sh", "-c", "echo oops >&2; exit 3")
    assert 'output: "oops"' in str(info.value)
    assert "exit status 3" in str(info.value)
    assert info.value.returncode == 3


def test_with_env_does_not_modify_original():
    base = HostEnv()
    extended = base.with_env("LIMAVM_TEST_VAR=bar")
    assert extended.run_output("sh", "-c", "echo $LIMAVM_TEST_VAR") == "bar"
    assert base.run_output("sh", "-c", "echo x$LIMAVM_TEST_VAR") == "x"


def test_with_dir(tmp_path):
    host = HostEnv().with_dir(str(tmp_path))
    assert host.run_output("pwd") == str(tmp_path.resolve())


def test_run_with_streams():
    stdout = io.BytesIO()
    HostEnv().run_with(io.BytesIO(b"piped"), stdout, "cat")
    assert stdout.getvalue() == b"piped"


def test_run_passes_output_through(capsys):
    HostEnv().run("sh", "-c", "echo hi")
    assert "hi" in capsys.readouterr().out


def test_run_failure_raises():
    with pytest.raises(CommandError) as info:
        HostEnv().run("sh", "-c", "exit 4")
    assert info.value.returncode == 4


def test_missing_executable_raises():
    with pytest.raises(CommandError):
        HostEnv().run_quiet("limavm-definitely-missing-binary")


def test_write_read_roundtrip(tmp_path):
    host = HostEnv()
    target = tmp_path / "file.txt"
    host.write(str(target), b"content")
    assert host.read(str(target)) == "content"
    assert host.stat(str(target)).st_size == len(b"content")


def test_env_missing_is_empty(monkeypatch):
    monkeypatch.delenv("LIMAVM_UNSET_VAR", raising=False)
    assert HostEnv().env("LIMAVM_UNSET_VAR") == ""


class _Deps:
    def __init__(self, names):
        self.names = names

    def dependencies(self):
        return self.names


def test_is_installed_reports_missing():
    with pytest.raises(DependencyError) as info:
        is_installed(_Deps(["sh", "limavm-missing-tool"]))
    assert "brew install limavm-missing-tool" in str(info.value)
    assert "sh," not in str(info.value)