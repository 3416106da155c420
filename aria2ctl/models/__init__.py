"""
Data Models Layer.

This package contains the endpoint configuration, the Pydantic models that
daemon responses decode into, the queue position model, and client settings.
"""

from .endpoint import Endpoint
from .queue import PositionOrigin, QueueMove, position_token
from .settings import ClientSettings
from .task import (
    FileDescriptor,
    PeerDescriptor,
    ServerConnection,
    ServerDescriptor,
    TaskDescriptor,
    TaskStatus,
    UriDescriptor,
    UriStatus,
)

__all__ = [
    "ClientSettings",
    "Endpoint",
    "FileDescriptor",
    "PeerDescriptor",
    "PositionOrigin",
    "QueueMove",
    "ServerConnection",
    "ServerDescriptor",
    "TaskDescriptor",
    "TaskStatus",
    "UriDescriptor",
    "UriStatus",
    "position_token",
]
