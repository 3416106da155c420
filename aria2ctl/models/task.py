"""
Decoded shapes of the daemon's task-related responses.

The daemon reports every number as a decimal string and every flag as
``"true"``/``"false"``; pydantic's lax mode turns them into ``int`` and
``bool``. All fields carry defaults because callers may ask the daemon for a
subset of keys: a default value means "not fetched", not "absent".
"""

from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel


class _DaemonModel(BaseModel):
    """Base for models keyed by the daemon's camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class TaskStatus(str, Enum):
    """Lifecycle states reported for a download task."""

    ACTIVE = "active"
    WAITING = "waiting"
    PAUSED = "paused"
    ERROR = "error"
    COMPLETE = "complete"
    REMOVED = "removed"


class UriStatus(str, Enum):
    USED = "used"
    WAITING = "waiting"


class UriDescriptor(_DaemonModel):
    uri: str = ""
    status: Optional[UriStatus] = None


class FileDescriptor(_DaemonModel):
    index: int = 0
    path: str = ""
    length: int = 0
    completed_length: int = 0
    selected: bool = False
    uris: list[UriDescriptor] = Field(default_factory=list)


class PeerDescriptor(_DaemonModel):
    """A peer connected to a BitTorrent task."""

    peer_id: str = ""
    ip: str = ""
    port: int = 0
    bitfield: str = ""
    am_choking: bool = False
    peer_choking: bool = False
    download_speed: int = 0
    upload_speed: int = 0
    seeder: bool = False


class ServerConnection(_DaemonModel):
    uri: str = ""
    current_uri: str = ""
    download_speed: int = 0


class ServerDescriptor(_DaemonModel):
    """HTTP(S)/FTP/SFTP servers currently used for one file of a task."""

    index: int = 0
    servers: list[ServerConnection] = Field(default_factory=list)


class TaskDescriptor(_DaemonModel):
    """
    Snapshot of one download task as reported by the daemon.

    Identity is ``gid``. Instances are transient query results; the daemon
    owns the canonical record and nothing here is cached.
    """

    gid: str = ""
    status: Optional[TaskStatus] = None
    total_length: int = 0
    completed_length: int = 0
    upload_length: int = 0
    bitfield: str = ""
    download_speed: int = 0
    upload_speed: int = 0
    info_hash: str = ""
    num_seeders: int = 0
    seeder: bool = False
    piece_length: int = 0
    num_pieces: int = 0
    connections: int = 0
    error_code: str = ""
    error_message: str = ""
    followed_by: list[str] = Field(default_factory=list)
    following: str = ""
    belongs_to: str = ""
    dir: str = ""
    files: list[FileDescriptor] = Field(default_factory=list)
    bittorrent: dict[str, Any] = Field(default_factory=dict)
    verified_length: int = 0
    verify_integrity_pending: bool = False

    _lookup_error: Optional[str] = PrivateAttr(default=None)

    @classmethod
    def unknown(cls, gid: str, reason: str) -> "TaskDescriptor":
        """
        Builds the placeholder returned when a status query fails.

        It reports ``status=removed`` like a task the daemon has forgotten,
        but remembers why the lookup failed so the two cases stay apart.
        """
        descriptor = cls(gid=gid, status=TaskStatus.REMOVED)
        descriptor._lookup_error = reason
        return descriptor

    @property
    def lookup_error(self) -> Optional[str]:
        """Reason the status query failed, or None for a real daemon answer."""
        return self._lookup_error

    @property
    def is_unknown(self) -> bool:
        return self._lookup_error is not None

    @property
    def progress(self) -> float:
        if self.total_length <= 0:
            return 0.0
        return self.completed_length / self.total_length

    @property
    def name(self) -> str:
        """Best-effort display name: torrent name, first file, or first URI."""
        if info_name := self.bittorrent.get("info", {}).get("name"):
            return info_name
        if self.files:
            first = self.files[0]
            if first.path:
                return PurePosixPath(first.path.replace("\\", "/")).name
            if first.uris:
                return first.uris[0].uri.rstrip("/").rsplit("/", 1)[-1]
        return self.gid
