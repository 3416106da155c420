"""
Async command facade over the aria2 JSON-RPC interface.
"""

import base64
import inspect
import logging
import os
from typing import IO, Any, Mapping, Optional, Sequence, TypeVar, Union

import aiofiles
from pydantic import BaseModel, ValidationError

from aria2ctl.exceptions import (
    LocalContractViolation,
    NotSupportedError,
    ProtocolFault,
    TransportFault,
)
from aria2ctl.models.endpoint import Endpoint
from aria2ctl.models.queue import PositionOrigin, QueueMove
from aria2ctl.models.settings import ClientSettings
from aria2ctl.models.task import (
    FileDescriptor,
    PeerDescriptor,
    ServerDescriptor,
    TaskDescriptor,
    UriDescriptor,
)
from aria2ctl.utils.structured_logger import RpcLogger

from .transport import JsonRpcTransport

log = logging.getLogger(__name__)

RESULT_OK = "OK"
DEFAULT_WINDOW_SIZE = 1000

TorrentSource = Union[bytes, bytearray, memoryview, str, os.PathLike, IO[bytes]]
ModelT = TypeVar("ModelT", bound=BaseModel)


class Aria2Client:
    """
    Async client for one aria2 daemon.

    Each method maps to exactly one RPC method and shapes its parameters
    before dispatch. Every coroutine accepts an optional ``call_id`` that is
    sent as the JSON-RPC request id; a fresh one is generated otherwise.

    Single-task controls succeed when the daemon echoes the gid back;
    fleet-wide and lifecycle controls succeed on the literal ``"OK"``.
    Anything else raises ``ProtocolFault``.
    """

    def __init__(
        self,
        endpoint: Optional[Endpoint] = None,
        secret: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[JsonRpcTransport] = None,
        rpc_logger: Optional[RpcLogger] = None,
    ):
        """
        Initializes the client.

        Args:
            endpoint: Daemon address; defaults to ``http://localhost:6800/jsonrpc``.
            secret: RPC secret token, if the daemon requires one.
            timeout: Total seconds per call, or None for no client-side limit.
            transport: A ready transport; overrides the three options above.
            rpc_logger: Receiver for structured call events.
        """
        self.transport = transport or JsonRpcTransport(
            endpoint or Endpoint(), secret=secret, timeout=timeout, rpc_logger=rpc_logger
        )

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, rpc_logger: Optional[RpcLogger] = None
    ) -> "Aria2Client":
        return cls(
            settings.endpoint(),
            secret=settings.secret,
            timeout=settings.timeout,
            rpc_logger=rpc_logger,
        )

    @property
    def endpoint(self) -> Endpoint:
        return self.transport.endpoint

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "Aria2Client":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _call(
        self, method: str, *params: Any, call_id: Optional[str] = None
    ) -> Any:
        return await self.transport.call(method, params, call_id=call_id)

    # Adding downloads
    async def add_uri(
        self,
        uris: Sequence[str],
        options: Optional[Mapping[str, str]] = None,
        position: Optional[int] = None,
        *,
        call_id: Optional[str] = None,
    ) -> str:
        """
        Adds a download from one or more URIs and returns its gid.

        Args:
            uris: HTTP(S)/FTP/SFTP/magnet URIs that all point at the same
                resource. A magnet link must be the only element.
            options: Daemon option names mapped to string values.
            position: Index in the waiting queue, from 0. None or a negative
                value appends the download at the end of the queue.
        """
        if (
            isinstance(uris, str)
            or not uris
            or not all(isinstance(uri, str) for uri in uris)
        ):
            raise LocalContractViolation("uris must be a non-empty list of strings.")
        if position is not None and (
            isinstance(position, bool) or not isinstance(position, int)
        ):
            raise LocalContractViolation(
                f"position must be an integer, got {position!r}."
            )

        # The protocol is positional: an explicit position needs an options slot.
        params: list[Any] = [list(uris), dict(options) if options is not None else {}]
        if position is not None and position >= 0:
            params.append(position)

        result = await self._call("aria2.addUri", *params, call_id=call_id)
        gid = self._expect_str(result, "aria2.addUri")
        log.debug(f"Added download {gid} from {len(uris)} URI(s).")
        return gid

    async def add_torrent(
        self,
        source: TorrentSource,
        options: Optional[Mapping[str, str]] = None,
        *,
        call_id: Optional[str] = None,
    ) -> str:
        """
        Uploads a .torrent payload and returns the new download's gid.

        ``source`` may be the raw bytes, a path, or a binary stream. A file
        opened from a path is closed before this returns, on every path.
        A caller's stream is read to the end but left open.
        """
        payload = await _read_torrent(source)
        encoded = base64.b64encode(payload).decode("ascii")

        params: list[Any] = [encoded]
        if options is not None:
            params.extend([[], dict(options)])

        result = await self._call("aria2.addTorrent", *params, call_id=call_id)
        gid = self._expect_str(result, "aria2.addTorrent")
        log.debug(f"Added torrent download {gid} ({len(payload)} bytes).")
        return gid

    async def add_metalink(self, *args: Any, **kwargs: Any) -> Any:
        raise NotSupportedError("aria2.addMetalink is not supported by this client.")

    # Removing, pausing and resuming
    async def remove(self, gid: str, *, call_id: Optional[str] = None) -> bool:
        """Stops the download gracefully; the daemon cleans up first."""
        return await self._gid_call("aria2.remove", gid, call_id)

    async def force_remove(self, gid: str, *, call_id: Optional[str] = None) -> bool:
        """Stops the download immediately, skipping the daemon's cleanup."""
        return await self._gid_call("aria2.forceRemove", gid, call_id)

    async def pause(self, gid: str, *, call_id: Optional[str] = None) -> bool:
        return await self._gid_call("aria2.pause", gid, call_id)

    async def force_pause(self, gid: str, *, call_id: Optional[str] = None) -> bool:
        return await self._gid_call("aria2.forcePause", gid, call_id)

    async def pause_all(self, *, call_id: Optional[str] = None) -> bool:
        return await self._ok_call("aria2.pauseAll", call_id=call_id)

    async def force_pause_all(self, *, call_id: Optional[str] = None) -> bool:
        return await self._ok_call("aria2.forcePauseAll", call_id=call_id)

    async def unpause(self, gid: str, *, call_id: Optional[str] = None) -> bool:
        """Moves a paused download back to the waiting state."""
        return await self._gid_call("aria2.unpause", gid, call_id)

    async def unpause_all(self, *, call_id: Optional[str] = None) -> bool:
        return await self._ok_call("aria2.unpauseAll", call_id=call_id)

    # Querying
    async def tell_status(
        self,
        gid: str,
        keys: Optional[Sequence[str]] = None,
        *,
        call_id: Optional[str] = None,
    ) -> TaskDescriptor:
        """
        Returns the status of one download.

        When ``keys`` is given only those fields are fetched; the rest keep
        their defaults.

        This call does not raise on transport or protocol faults. It returns
        ``TaskDescriptor.unknown(gid, reason)`` instead: ``status`` is
        ``removed`` and ``lookup_error`` names the failure. Check
        ``is_unknown`` to tell a failed lookup from a task the daemon really
        reports as removed.
        """
        params: list[Any] = [gid]
        if keys:
            params.append(_key_list(keys))
        try:
            result = await self._call("aria2.tellStatus", *params, call_id=call_id)
            return self._decode(TaskDescriptor, result, "aria2.tellStatus")
        except (TransportFault, ProtocolFault) as e:
            log.debug(f"Status lookup for {gid} failed ({e.reason}): {e}")
            return TaskDescriptor.unknown(gid, e.reason)

    async def get_uris(
        self, gid: str, *, call_id: Optional[str] = None
    ) -> list[UriDescriptor]:
        result = await self._call("aria2.getUris", gid, call_id=call_id)
        return self._decode_list(UriDescriptor, result, "aria2.getUris")

    async def get_files(
        self, gid: str, *, call_id: Optional[str] = None
    ) -> list[FileDescriptor]:
        result = await self._call("aria2.getFiles", gid, call_id=call_id)
        return self._decode_list(FileDescriptor, result, "aria2.getFiles")

    async def get_peers(
        self, gid: str, *, call_id: Optional[str] = None
    ) -> list[PeerDescriptor]:
        """Lists connected peers. Only BitTorrent downloads have any."""
        result = await self._call("aria2.getPeers", gid, call_id=call_id)
        return self._decode_list(PeerDescriptor, result, "aria2.getPeers")

    async def get_servers(
        self, gid: str, *, call_id: Optional[str] = None
    ) -> list[ServerDescriptor]:
        result = await self._call("aria2.getServers", gid, call_id=call_id)
        return self._decode_list(ServerDescriptor, result, "aria2.getServers")

    async def tell_active(
        self, keys: Optional[Sequence[str]] = None, *, call_id: Optional[str] = None
    ) -> list[TaskDescriptor]:
        params = [_key_list(keys)] if keys else []
        result = await self._call("aria2.tellActive", *params, call_id=call_id)
        return self._decode_list(TaskDescriptor, result, "aria2.tellActive")

    async def tell_waiting(
        self,
        offset: int = 0,
        num: int = DEFAULT_WINDOW_SIZE,
        keys: Optional[Sequence[str]] = None,
        *,
        call_id: Optional[str] = None,
    ) -> list[TaskDescriptor]:
        """
        Lists waiting and paused downloads in the window ``[offset, offset + num)``.

        A negative offset counts from the back of the queue (``-1`` is the last
        download) and the daemon then returns the window in reverse order.
        Both are passed through untouched.
        """
        return await self._tell_window("aria2.tellWaiting", offset, num, keys, call_id)

    async def tell_stopped(
        self,
        offset: int = 0,
        num: int = DEFAULT_WINDOW_SIZE,
        keys: Optional[Sequence[str]] = None,
        *,
        call_id: Optional[str] = None,
    ) -> list[TaskDescriptor]:
        """Lists completed, errored and removed downloads; windowing as in ``tell_waiting``."""
        return await self._tell_window("aria2.tellStopped", offset, num, keys, call_id)

    async def _tell_window(
        self,
        method: str,
        offset: int,
        num: int,
        keys: Optional[Sequence[str]],
        call_id: Optional[str],
    ) -> list[TaskDescriptor]:
        for name, value in (("offset", offset), ("num", num)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise LocalContractViolation(f"{name} must be an integer, got {value!r}.")
        params: list[Any] = [offset, num]
        if keys:
            params.append(_key_list(keys))
        result = await self._call(method, *params, call_id=call_id)
        return self._decode_list(TaskDescriptor, result, method)

    # Queue and result housekeeping
    async def change_position(
        self,
        gid: str,
        offset: int,
        origin: Union[PositionOrigin, str],
        *,
        call_id: Optional[str] = None,
    ) -> int:
        """
        Moves a download within the waiting queue and returns its new position.

        ``origin`` is checked before anything is sent.
        """
        params = QueueMove(gid, offset, origin).to_params()
        result = await self._call("aria2.changePosition", *params, call_id=call_id)
        if isinstance(result, bool) or not isinstance(result, int):
            raise ProtocolFault(
                f"aria2.changePosition returned {result!r}, expected an integer."
            )
        return result

    async def change_uri(self, *args: Any, **kwargs: Any) -> Any:
        raise NotSupportedError("aria2.changeUri is not supported by this client.")

    async def get_option(self, *args: Any, **kwargs: Any) -> Any:
        raise NotSupportedError("aria2.getOption is not supported by this client.")

    async def purge_download_result(self, *, call_id: Optional[str] = None) -> bool:
        """Forgets every completed, errored and removed download."""
        return await self._ok_call("aria2.purgeDownloadResult", call_id=call_id)

    async def remove_download_result(
        self, gid: str, *, call_id: Optional[str] = None
    ) -> bool:
        """Forgets one completed, errored or removed download."""
        return await self._ok_call("aria2.removeDownloadResult", gid, call_id=call_id)

    # Daemon lifecycle
    async def get_version(self, *, call_id: Optional[str] = None) -> dict[str, Any]:
        return await self._call("aria2.getVersion", call_id=call_id)

    async def get_session_info(self, *, call_id: Optional[str] = None) -> dict[str, Any]:
        return await self._call("aria2.getSessionInfo", call_id=call_id)

    async def shutdown(self, *, call_id: Optional[str] = None) -> bool:
        return await self._ok_call("aria2.shutdown", call_id=call_id)

    async def force_shutdown(self, *, call_id: Optional[str] = None) -> bool:
        return await self._ok_call("aria2.forceShutdown", call_id=call_id)

    async def save_session(self, *, call_id: Optional[str] = None) -> bool:
        """Writes the daemon's session to its ``--save-session`` file."""
        return await self._ok_call("aria2.saveSession", call_id=call_id)

    # Capability discovery. The daemon answers these without the RPC secret,
    # and the transport never attaches it to them.
    async def list_methods(self, *, call_id: Optional[str] = None) -> list[str]:
        result = await self._call("system.listMethods", call_id=call_id)
        return self._expect_str_list(result, "system.listMethods")

    async def list_notifications(self, *, call_id: Optional[str] = None) -> list[str]:
        result = await self._call("system.listNotifications", call_id=call_id)
        return self._expect_str_list(result, "system.listNotifications")

    # Result checks
    async def _gid_call(self, method: str, gid: str, call_id: Optional[str]) -> bool:
        result = await self._call(method, gid, call_id=call_id)
        if result != gid:
            raise ProtocolFault(f"{method} returned {result!r}, expected gid {gid!r}.")
        return True

    async def _ok_call(
        self, method: str, *params: Any, call_id: Optional[str] = None
    ) -> bool:
        result = await self._call(method, *params, call_id=call_id)
        if result != RESULT_OK:
            raise ProtocolFault(f"{method} returned {result!r}, expected 'OK'.")
        return True

    @staticmethod
    def _expect_str(result: Any, method: str) -> str:
        if not isinstance(result, str):
            raise ProtocolFault(f"{method} returned {result!r}, expected a gid.")
        return result

    @staticmethod
    def _expect_str_list(result: Any, method: str) -> list[str]:
        if not isinstance(result, list) or not all(isinstance(r, str) for r in result):
            raise TransportFault(
                "malformed_response", f"{method} did not return a list of names."
            )
        return result

    @staticmethod
    def _decode(model: type[ModelT], result: Any, method: str) -> ModelT:
        try:
            return model.model_validate(result)
        except ValidationError as e:
            raise TransportFault(
                "malformed_response", f"Could not decode {method} result: {e}"
            ) from e

    @classmethod
    def _decode_list(
        cls, model: type[ModelT], result: Any, method: str
    ) -> list[ModelT]:
        if not isinstance(result, list):
            raise TransportFault(
                "malformed_response", f"{method} did not return a list."
            )
        return [cls._decode(model, item, method) for item in result]


def _key_list(keys: Sequence[str]) -> list[str]:
    if isinstance(keys, str):
        return [keys]
    return list(keys)


async def _read_torrent(source: TorrentSource) -> bytes:
    """Reads the whole torrent payload into memory."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    if isinstance(source, (str, os.PathLike)):
        try:
            async with aiofiles.open(source, "rb") as f:
                return await f.read()
        except OSError as e:
            raise LocalContractViolation(f"Cannot read torrent file {source}: {e}") from e

    read = getattr(source, "read", None)
    if read is None:
        raise LocalContractViolation(
            f"Unsupported torrent source of type {type(source).__name__}."
        )
    data = read()
    if inspect.isawaitable(data):
        data = await data
    if not isinstance(data, (bytes, bytearray)):
        raise LocalContractViolation("Torrent stream must be opened in binary mode.")
    return bytes(data)
