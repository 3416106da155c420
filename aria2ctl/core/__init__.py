"""
Daemon process supervision.

The `ProcessSupervisor` starts the aria2 daemon when no process of that name
is running, delegating the cosmetic step of hiding its console window to a
platform-specific `WindowHider`.
"""

from .supervisor import ProcessSupervisor
from .window import NullWindowHider, Win32WindowHider, WindowHider

__all__ = ["NullWindowHider", "ProcessSupervisor", "Win32WindowHider", "WindowHider"]
