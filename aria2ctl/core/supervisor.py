"""
Starts the aria2 daemon when it is not already running.
"""

import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional, Sequence

import psutil

from aria2ctl.exceptions import SupervisorError
from aria2ctl.models.settings import (
    DAEMON_EXECUTABLE,
    DEFAULT_DAEMON_ARGUMENTS,
    ClientSettings,
)
from aria2ctl.utils.structured_logger import StructuredLogger, SupervisorLogger

from .window import WindowHider, default_window_hider


class ProcessSupervisor:
    """
    Launches the daemon executable and optionally hides its window.

    Liveness is judged by process name, not by a successful RPC call: a daemon
    that is still starting up already counts as running. Two callers racing
    through ``ensure_running`` may both launch a daemon; nothing here prevents
    it.
    """

    HIDE_ATTEMPTS = 5
    HIDE_INTERVAL_S = 0.2

    def __init__(
        self,
        window_hider: Optional[WindowHider] = None,
        supervisor_logger: Optional[SupervisorLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._window_hider = window_hider
        self._events = supervisor_logger or SupervisorLogger(
            StructuredLogger("aria2ctl.supervisor")
        )
        self._sleep = sleep

    @property
    def window_hider(self) -> WindowHider:
        if self._window_hider is None:
            self._window_hider = default_window_hider()
        return self._window_hider

    @staticmethod
    def is_running(process_name: str = DAEMON_EXECUTABLE) -> bool:
        """Checks whether any process with the given executable name exists."""
        wanted = process_name.lower()
        for proc in psutil.process_iter(["name"]):
            name = proc.info.get("name")
            if name and name.lower() == wanted:
                return True
        return False

    def ensure_running(
        self,
        executable: Optional[str] = None,
        args: Optional[Sequence[str]] = None,
        working_directory: Optional[str] = None,
        hide_window: bool = True,
    ) -> Optional[subprocess.Popen]:
        """
        Launches the daemon unless a process of the same name is running.

        Args:
            executable: Path to the daemon. Defaults to ``aria2c`` in the
                current directory, then on PATH.
            args: Command-line arguments. Default to loading ``aria2.conf``
                when no executable is given, and to none otherwise.
            working_directory: Defaults to the executable's directory.
            hide_window: Try to hide the daemon's console window.

        Returns:
            The launched process, or None when the daemon was already running.
        """
        if executable is None:
            executable = _default_executable()
            if args is None:
                args = list(DEFAULT_DAEMON_ARGUMENTS)
        executable = _resolve_executable(executable)
        args = list(args or [])

        process_name = Path(executable).name
        if self.is_running(process_name):
            self._events.already_running(process_name)
            return None

        if working_directory is None:
            working_directory = str(Path(executable).parent)

        try:
            process = subprocess.Popen(
                [executable, *args],
                cwd=working_directory,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            raise SupervisorError(f"Failed to start {executable}: {e}") from e

        self._events.launched(executable, args, process.pid)

        if hide_window:
            self._hide_window(process.pid)
        return process

    def ensure_running_from_settings(
        self, settings: ClientSettings
    ) -> Optional[subprocess.Popen]:
        return self.ensure_running(
            executable=settings.executable or None,
            args=settings.arguments or None,
            working_directory=settings.working_directory or None,
            hide_window=settings.hide_window,
        )

    def _hide_window(self, pid: int) -> bool:
        """Polls for the main window and hides it once. Gives up quietly."""
        if not self.window_hider.supports_hiding:
            return False
        for attempt in range(1, self.HIDE_ATTEMPTS + 1):
            self._sleep(self.HIDE_INTERVAL_S)
            handle = self.window_hider.find_main_window(pid)
            if handle:
                self.window_hider.hide(handle)
                self._events.window_hidden(pid, attempt)
                return True
        self._events.window_not_found(pid, self.HIDE_ATTEMPTS)
        return False


def _resolve_executable(executable: str) -> str:
    """Looks a bare program name up on PATH, like a shell would."""
    if not Path(executable).parent.parts:
        found = shutil.which(executable)
        if found:
            return found
    return str(Path(executable).resolve())


def _default_executable() -> str:
    local = Path(os.getcwd()) / DAEMON_EXECUTABLE
    if local.is_file():
        return str(local)
    return shutil.which(DAEMON_EXECUTABLE) or str(local)
