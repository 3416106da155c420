"""
JSON-RPC transport for the aria2 daemon over HTTP.
"""

import asyncio
import json
import logging
import time
import uuid
from typing import Any, Optional, Sequence

import aiohttp

from aria2ctl.exceptions import ProtocolFault, TransportFault
from aria2ctl.models.endpoint import Endpoint
from aria2ctl.utils.structured_logger import RpcLogger, StructuredLogger

log = logging.getLogger(__name__)

# Capability discovery answers without the RPC secret; never send it there.
UNAUTHENTICATED_METHODS = frozenset({"system.listMethods", "system.listNotifications"})


class JsonRpcTransport:
    """
    Sends one JSON-RPC 2.0 request per call and decodes the answer.

    The endpoint address is read once per call, so endpoint changes apply to
    every call issued after them. No retries are made and no timeout is
    imposed unless one is configured.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        secret: Optional[str] = None,
        timeout: Optional[float] = None,
        rpc_logger: Optional[RpcLogger] = None,
    ):
        """
        Initializes the transport.

        Args:
            endpoint: Where the daemon listens; may be changed between calls.
            secret: The daemon's ``--rpc-secret``, if it was started with one.
            timeout: Total seconds per call, or None to wait indefinitely.
            rpc_logger: Receiver for structured call events.
        """
        self.endpoint = endpoint
        self.secret = secret or None
        self.timeout = timeout or None
        self._rpc_log = rpc_logger or RpcLogger(StructuredLogger("aria2ctl.rpc"))
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            log.debug(f"Opening HTTP session (timeout={self.timeout}).")
            self._session = aiohttp.ClientSession(
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def build_request(
        self, method: str, params: Sequence[Any] = (), call_id: Optional[str] = None
    ) -> dict[str, Any]:
        """Builds the request object, prepending the secret token where required."""
        wire_params = list(params)
        if self.secret and method not in UNAUTHENTICATED_METHODS:
            wire_params.insert(0, f"token:{self.secret}")
        return {
            "jsonrpc": "2.0",
            "id": call_id if call_id is not None else uuid.uuid4().hex,
            "method": method,
            "params": wire_params,
        }

    async def call(
        self, method: str, params: Sequence[Any] = (), call_id: Optional[str] = None
    ) -> Any:
        """
        Calls ``method`` with positional ``params`` and returns the decoded result.

        Raises:
            TransportFault: The daemon could not be reached or its answer
                could not be decoded.
            ProtocolFault: The daemon answered with an error object.
        """
        await self._initialize_session()

        request = self.build_request(method, params, call_id)
        request_id = request["id"]
        url = self.endpoint.url

        self._rpc_log.call_started(method, request_id, request["params"])
        start_time = time.monotonic()
        try:
            result = await self._post(url, request)
        except (TransportFault, ProtocolFault) as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            self._rpc_log.call_failed(method, request_id, e.reason, str(e), duration_ms)
            raise

        duration_ms = (time.monotonic() - start_time) * 1000
        self._rpc_log.call_completed(method, request_id, duration_ms)
        return result

    async def _post(self, url: str, request: dict[str, Any]) -> Any:
        try:
            async with self._session.post(url, json=request) as r:
                body = await r.read()
                status = r.status
        except asyncio.TimeoutError as e:
            raise TransportFault("timeout", f"Call to {url} timed out.") from e
        except aiohttp.ClientError as e:
            raise TransportFault(
                "connection_error", f"Could not reach daemon at {url}: {e}"
            ) from e

        # UnicodeDecodeError is a ValueError; undecodable bytes are malformed too.
        try:
            payload = json.loads(body.decode("utf-8"))
        except ValueError:
            if status != 200:
                raise TransportFault(
                    "http_status", f"Daemon at {url} answered HTTP {status}."
                ) from None
            raise TransportFault(
                "malformed_response", "Daemon response is not valid JSON."
            ) from None

        return self._decode(payload, request["id"], status)

    @staticmethod
    def _decode(payload: Any, request_id: str, status: int) -> Any:
        if not isinstance(payload, dict):
            raise TransportFault(
                "malformed_response", "Daemon response is not a JSON object."
            )

        # The daemon pairs error objects with HTTP 400; the object is what matters.
        if "error" in payload:
            error = payload["error"]
            if isinstance(error, dict):
                raise ProtocolFault(
                    str(error.get("message", "Unknown error")),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise ProtocolFault(str(error))

        if status != 200:
            raise TransportFault("http_status", f"Daemon answered HTTP {status}.")
        if payload.get("id") != request_id:
            raise TransportFault(
                "malformed_response",
                f"Response id {payload.get('id')!r} does not match "
                f"request id {request_id!r}.",
            )
        if "result" not in payload:
            raise TransportFault(
                "malformed_response", "Daemon response carries no result."
            )
        return payload["result"]
