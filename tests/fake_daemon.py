# tests/fake_daemon.py

from __future__ import annotations

import base64
import itertools
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

GID_NOT_FOUND = 1


class RpcError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class FakeTask:
    gid: str
    status: str
    uris: list[str]
    options: dict[str, str] = field(default_factory=dict)
    torrent: bytes | None = None

    def as_status(self, keys: list[str] | None = None) -> dict[str, Any]:
        full = {
            "gid": self.gid,
            "status": self.status,
            "totalLength": "1048576",
            "completedLength": "0",
            "uploadLength": "0",
            "downloadSpeed": "0",
            "uploadSpeed": "0",
            "connections": "0",
            "dir": self.options.get("dir", "/downloads"),
            "files": [
                {
                    "index": "1",
                    "path": "",
                    "length": "1048576",
                    "completedLength": "0",
                    "selected": "true",
                    "uris": [{"uri": uri, "status": "waiting"} for uri in self.uris],
                }
            ],
        }
        if not keys:
            return full
        return {k: v for k, v in full.items() if k in keys}


class FakeDaemon:
    """
    Minimal aria2 JSON-RPC server for transport and end-to-end tests.

    Keeps a waiting queue and a stopped list; implements the queue windowing
    and position rules the real daemon documents.
    """

    def __init__(self, secret: str | None = None) -> None:
        self.secret = secret
        self.waiting: list[FakeTask] = []
        self.active: list[FakeTask] = []
        self.stopped: list[FakeTask] = []
        self.requests: list[dict[str, Any]] = []
        self._gids = (f"2089b05ecca3d{n:03x}" for n in itertools.count(0x829))

    def make_app(self) -> web.Application:
        app = web.Application(client_max_size=64 * 1024 * 1024)
        app.router.add_post("/jsonrpc", self.handle)
        return app

    async def handle(self, request: web.Request) -> web.Response:
        payload = await request.json()
        self.requests.append(payload)
        request_id = payload.get("id")
        params = list(payload.get("params", []))
        method = payload["method"]
        try:
            if not method.startswith("system."):
                params = self._check_token(params)
            result = self._dispatch(method, params)
        except RpcError as e:
            return web.json_response(
                {
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "error": {"code": e.code, "message": e.message},
                },
                status=400,
            )
        return web.json_response({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _check_token(self, params: list[Any]) -> list[Any]:
        if self.secret is None:
            return params
        if not params or params[0] != f"token:{self.secret}":
            raise RpcError(1, "Unauthorized")
        return params[1:]

    def find(self, gid: str) -> FakeTask:
        for task in itertools.chain(self.active, self.waiting, self.stopped):
            if task.gid == gid:
                return task
        raise RpcError(GID_NOT_FOUND, f"GID {gid} is not found")

    def _add(self, task: FakeTask, position: int | None) -> str:
        if position is None or position > len(self.waiting):
            self.waiting.append(task)
        else:
            self.waiting.insert(position, task)
        return task.gid

    @staticmethod
    def _window(items: list[FakeTask], offset: int, num: int) -> list[FakeTask]:
        if offset >= 0:
            return items[offset : offset + num]
        start = len(items) + offset
        picked = []
        for i in range(start, max(start - num, -1), -1):
            if 0 <= i < len(items):
                picked.append(items[i])
        return picked

    def _dispatch(self, method: str, params: list[Any]) -> Any:
        if method == "aria2.addUri":
            uris, options, *rest = params
            task = FakeTask(next(self._gids), "waiting", uris, options)
            return self._add(task, rest[0] if rest else None)
        if method == "aria2.addTorrent":
            task = FakeTask(next(self._gids), "waiting", [])
            task.torrent = base64.b64decode(params[0])
            if len(params) > 2:
                task.options = params[2]
            return self._add(task, None)
        if method == "aria2.tellStatus":
            return self.find(params[0]).as_status(params[1] if len(params) > 1 else None)
        if method in ("aria2.tellWaiting", "aria2.tellStopped"):
            items = self.waiting if method == "aria2.tellWaiting" else self.stopped
            keys = params[2] if len(params) > 2 else None
            return [t.as_status(keys) for t in self._window(items, params[0], params[1])]
        if method == "aria2.tellActive":
            keys = params[0] if params else None
            return [t.as_status(keys) for t in self.active]
        if method == "aria2.changePosition":
            return self._change_position(*params)
        if method in ("aria2.pauseAll", "aria2.forcePauseAll"):
            for task in self.active:
                task.status = "paused"
            return "OK"
        if method in ("aria2.remove", "aria2.forceRemove"):
            task = self.find(params[0])
            for queue in (self.active, self.waiting):
                if task in queue:
                    queue.remove(task)
            task.status = "removed"
            self.stopped.append(task)
            return task.gid
        if method == "aria2.getVersion":
            return {"version": "1.37.0", "enabledFeatures": ["BitTorrent", "Metalink"]}
        if method == "system.listMethods":
            return ["aria2.addUri", "aria2.tellStatus", "system.listMethods"]
        raise RpcError(1, f"No such method: {method}")

    def _change_position(self, gid: str, pos: int, how: str) -> int:
        task = self.find(gid)
        if task not in self.waiting:
            raise RpcError(1, f"GID#{gid} not found in the waiting queue.")
        current = self.waiting.index(task)
        if how == "POS_SET":
            dest = pos
        elif how == "POS_CUR":
            dest = current + pos
        elif how == "POS_END":
            dest = len(self.waiting) - 1 + pos
        else:
            raise RpcError(1, f"Illegal argument: {how}")
        dest = max(0, min(dest, len(self.waiting) - 1))
        self.waiting.remove(task)
        self.waiting.insert(dest, task)
        return dest
