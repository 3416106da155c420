"""
Best-effort hiding of a spawned process's console window.

Only Windows has the concept; everywhere else ``NullWindowHider`` is used and
never finds a window.
"""

import logging
import os
import sys
from typing import Optional, Protocol

log = logging.getLogger(__name__)

SW_HIDE = 0
GW_OWNER = 4


class WindowHider(Protocol):
    supports_hiding: bool

    def find_main_window(self, pid: int) -> Optional[int]:
        """Returns the handle of the process's main window, if it has one yet."""

    def hide(self, handle: int) -> None:
        """Hides the window behind ``handle``."""


class NullWindowHider:
    supports_hiding = False

    def find_main_window(self, pid: int) -> Optional[int]:
        return None

    def hide(self, handle: int) -> None:
        return None


class Win32WindowHider:
    """Looks up top-level windows through ``user32`` with ctypes."""

    supports_hiding = True

    def __init__(self) -> None:
        import ctypes
        from ctypes import wintypes

        self._ctypes = ctypes
        self._wintypes = wintypes
        self._user32 = ctypes.WinDLL("user32", use_last_error=True)
        self._enum_proc = ctypes.WINFUNCTYPE(
            wintypes.BOOL, wintypes.HWND, wintypes.LPARAM
        )

    def find_main_window(self, pid: int) -> Optional[int]:
        ctypes, wintypes, user32 = self._ctypes, self._wintypes, self._user32
        found: list[int] = []

        def _visit(hwnd, _lparam):
            owner_pid = wintypes.DWORD()
            user32.GetWindowThreadProcessId(hwnd, ctypes.byref(owner_pid))
            # A main window is a visible top-level window without an owner.
            if (
                owner_pid.value == pid
                and user32.IsWindowVisible(hwnd)
                and not user32.GetWindow(hwnd, GW_OWNER)
            ):
                found.append(hwnd)
                return False
            return True

        user32.EnumWindows(self._enum_proc(_visit), 0)
        return found[0] if found else None

    def hide(self, handle: int) -> None:
        self._user32.ShowWindow(handle, SW_HIDE)


def default_window_hider() -> WindowHider:
    if os.name == "nt" and sys.platform == "win32":
        return Win32WindowHider()
    log.debug("Window hiding is not available on this platform.")
    return NullWindowHider()
