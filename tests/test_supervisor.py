# tests/test_supervisor.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from aria2ctl.core import supervisor as supervisor_module
from aria2ctl.core.supervisor import ProcessSupervisor
from aria2ctl.core.window import NullWindowHider
from aria2ctl.exceptions import SupervisorError
from aria2ctl.models.settings import ClientSettings

from .fakes import FakeWindowHider


class FakePopen:
    launched: list[dict] = []

    def __init__(self, command, cwd=None, stdin=None):
        self.command = command
        self.cwd = cwd
        self.pid = 4242
        FakePopen.launched.append({"command": command, "cwd": cwd})


@pytest.fixture()
def processes(monkeypatch):
    """Controls the process names the supervisor sees and records launches."""
    names: list[str] = ["systemd", "bash"]
    FakePopen.launched = []

    def process_iter(attrs):
        assert attrs == ["name"]
        return [SimpleNamespace(info={"name": name}) for name in names]

    monkeypatch.setattr(supervisor_module.psutil, "process_iter", process_iter)
    monkeypatch.setattr(supervisor_module.subprocess, "Popen", FakePopen)
    return names


@pytest.fixture()
def executable(tmp_path):
    path = tmp_path / "bin" / "aria2c"
    path.parent.mkdir()
    path.write_bytes(b"")
    return path


def make_supervisor(hider):
    sleeps: list[float] = []
    return ProcessSupervisor(window_hider=hider, sleep=sleeps.append), sleeps


def test_is_running_ignores_case(processes) -> None:
    processes.append("ARIA2C.EXE")
    assert ProcessSupervisor.is_running("aria2c.exe")
    assert not ProcessSupervisor.is_running("aria2c")


def test_already_running_launches_nothing(processes, executable) -> None:
    processes.append("aria2c")
    hider = FakeWindowHider(appears_after=1)
    supervisor, sleeps = make_supervisor(hider)

    assert supervisor.ensure_running(str(executable)) is None
    assert FakePopen.launched == []
    assert hider.lookups == [] and sleeps == []


def test_launch_hides_window_once_it_appears(processes, executable) -> None:
    hider = FakeWindowHider(appears_after=3)
    supervisor, sleeps = make_supervisor(hider)

    process = supervisor.ensure_running(str(executable), ["--enable-rpc"])

    assert process.pid == 4242
    assert FakePopen.launched == [
        {"command": [str(executable.resolve()), "--enable-rpc"], "cwd": str(executable.parent.resolve())}
    ]
    assert hider.lookups == [4242, 4242, 4242]
    assert hider.hidden == [0xBEEF]
    assert sleeps == [ProcessSupervisor.HIDE_INTERVAL_S] * 3


def test_window_never_appearing_is_not_an_error(processes, executable) -> None:
    hider = FakeWindowHider(appears_after=None)
    supervisor, sleeps = make_supervisor(hider)

    assert supervisor.ensure_running(str(executable)) is not None
    assert len(hider.lookups) == ProcessSupervisor.HIDE_ATTEMPTS
    assert hider.hidden == []
    assert sleeps == [0.2] * 5


def test_visible_launch_skips_window_polling(processes, executable) -> None:
    hider = FakeWindowHider(appears_after=1)
    supervisor, sleeps = make_supervisor(hider)

    supervisor.ensure_running(str(executable), hide_window=False)

    assert hider.lookups == [] and sleeps == []


def test_launch_failure_raises_supervisor_error(processes, executable, monkeypatch) -> None:
    def broken_popen(*args, **kwargs):
        raise FileNotFoundError(2, "No such file")

    monkeypatch.setattr(supervisor_module.subprocess, "Popen", broken_popen)
    supervisor, _ = make_supervisor(NullWindowHider())

    with pytest.raises(SupervisorError, match="Failed to start"):
        supervisor.ensure_running(str(executable))


def test_default_executable_comes_from_working_directory(
    processes, tmp_path, monkeypatch
) -> None:
    local = tmp_path / supervisor_module.DAEMON_EXECUTABLE
    local.write_bytes(b"")
    monkeypatch.chdir(tmp_path)
    supervisor, _ = make_supervisor(NullWindowHider())

    supervisor.ensure_running(hide_window=False)

    assert FakePopen.launched == [
        {
            "command": [str(local.resolve()), "--conf-path=aria2.conf"],
            "cwd": str(tmp_path.resolve()),
        }
    ]


def test_bare_executable_name_is_found_on_path(processes, tmp_path, monkeypatch) -> None:
    (tmp_path / "aria2c").write_bytes(b"")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        supervisor_module.shutil,
        "which",
        lambda name: "/usr/bin/aria2c" if name == "aria2c" else None,
    )
    supervisor, _ = make_supervisor(NullWindowHider())

    supervisor.ensure_running("aria2c", hide_window=False)

    assert FakePopen.launched == [{"command": ["/usr/bin/aria2c"], "cwd": "/usr/bin"}]


def test_bare_name_missing_from_path_falls_back_to_working_directory(
    processes, tmp_path, monkeypatch
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(supervisor_module.shutil, "which", lambda name: None)
    supervisor, _ = make_supervisor(NullWindowHider())

    supervisor.ensure_running("aria2c", hide_window=False)

    assert FakePopen.launched[0]["command"] == [str((tmp_path / "aria2c").resolve())]


def test_hider_without_window_support_skips_polling(processes, executable) -> None:
    hider = FakeWindowHider(appears_after=1, supports_hiding=False)
    supervisor, sleeps = make_supervisor(hider)

    assert supervisor.ensure_running(str(executable)) is not None
    assert hider.lookups == [] and hider.hidden == []
    assert sleeps == []


def test_explicit_working_directory_and_settings(processes, executable, tmp_path) -> None:
    settings = ClientSettings(
        executable=str(executable),
        arguments=["--enable-rpc", "--rpc-listen-port=6801"],
        working_directory=str(tmp_path),
        hide_window=False,
    )
    supervisor, _ = make_supervisor(NullWindowHider())

    supervisor.ensure_running_from_settings(settings)

    assert FakePopen.launched[0]["cwd"] == str(tmp_path)
    assert FakePopen.launched[0]["command"][1:] == [
        "--enable-rpc",
        "--rpc-listen-port=6801",
    ]


def test_null_window_hider_finds_nothing() -> None:
    hider = NullWindowHider()
    assert hider.supports_hiding is False
    assert hider.find_main_window(1) is None
    hider.hide(1)
