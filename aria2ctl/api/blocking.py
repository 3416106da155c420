"""
Blocking counterpart of the async client.

Every blocking method runs the coroutine of the same name on a private event
loop owned by the wrapper, so both call paths share one implementation of
parameter shaping and decoding. No threads are started.
"""

import asyncio
import functools
from typing import Any, Callable, Optional

from aria2ctl.models.endpoint import Endpoint
from aria2ctl.models.settings import ClientSettings
from aria2ctl.utils.structured_logger import RpcLogger

from .client import Aria2Client


def _blocking(name: str) -> Callable[..., Any]:
    coroutine_fn = getattr(Aria2Client, name)

    @functools.wraps(coroutine_fn)
    def method(self: "BlockingAria2Client", *args: Any, **kwargs: Any) -> Any:
        return self._wait(getattr(self.client, name)(*args, **kwargs))

    return method


class BlockingAria2Client:
    """
    Synchronous facade with the same operations as ``Aria2Client``.

    Must not be used from a thread that is already running an event loop;
    use ``Aria2Client`` there.
    """

    def __init__(
        self,
        endpoint: Optional[Endpoint] = None,
        secret: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[Aria2Client] = None,
        rpc_logger: Optional[RpcLogger] = None,
    ):
        self.client = client or Aria2Client(
            endpoint, secret=secret, timeout=timeout, rpc_logger=rpc_logger
        )
        self._loop = asyncio.new_event_loop()

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, rpc_logger: Optional[RpcLogger] = None
    ) -> "BlockingAria2Client":
        return cls(client=Aria2Client.from_settings(settings, rpc_logger=rpc_logger))

    @property
    def endpoint(self) -> Endpoint:
        return self.client.endpoint

    def _wait(self, coroutine: Any) -> Any:
        if self._loop.is_closed():
            coroutine.close()
            raise RuntimeError("This client has been closed.")
        return self._loop.run_until_complete(coroutine)

    def close(self) -> None:
        if self._loop.is_closed():
            return
        try:
            self._loop.run_until_complete(self.client.close())
        finally:
            self._loop.close()

    def __enter__(self) -> "BlockingAria2Client":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    add_uri = _blocking("add_uri")
    add_torrent = _blocking("add_torrent")
    add_metalink = _blocking("add_metalink")
    remove = _blocking("remove")
    force_remove = _blocking("force_remove")
    pause = _blocking("pause")
    force_pause = _blocking("force_pause")
    pause_all = _blocking("pause_all")
    force_pause_all = _blocking("force_pause_all")
    unpause = _blocking("unpause")
    unpause_all = _blocking("unpause_all")
    tell_status = _blocking("tell_status")
    get_uris = _blocking("get_uris")
    get_files = _blocking("get_files")
    get_peers = _blocking("get_peers")
    get_servers = _blocking("get_servers")
    tell_active = _blocking("tell_active")
    tell_waiting = _blocking("tell_waiting")
    tell_stopped = _blocking("tell_stopped")
    change_position = _blocking("change_position")
    change_uri = _blocking("change_uri")
    get_option = _blocking("get_option")
    purge_download_result = _blocking("purge_download_result")
    remove_download_result = _blocking("remove_download_result")
    get_version = _blocking("get_version")
    get_session_info = _blocking("get_session_info")
    shutdown = _blocking("shutdown")
    force_shutdown = _blocking("force_shutdown")
    save_session = _blocking("save_session")
    list_methods = _blocking("list_methods")
    list_notifications = _blocking("list_notifications")
