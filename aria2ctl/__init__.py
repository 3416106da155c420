"""
aria2ctl: control-plane client for the aria2 download daemon's JSON-RPC interface.
"""

from aria2ctl.api import Aria2Client, BlockingAria2Client
from aria2ctl.core import ProcessSupervisor
from aria2ctl.models import Endpoint, PositionOrigin, TaskDescriptor, TaskStatus

__version__ = "0.1.0"

__all__ = [
    "Aria2Client",
    "BlockingAria2Client",
    "Endpoint",
    "PositionOrigin",
    "ProcessSupervisor",
    "TaskDescriptor",
    "TaskStatus",
    "__version__",
]
