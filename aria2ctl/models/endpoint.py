"""
Endpoint configuration for the daemon's JSON-RPC interface.
"""

import threading
from typing import Optional

from aria2ctl.exceptions import LocalContractViolation

SCHEME = "http"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6800
DEFAULT_PATH = "/jsonrpc"


class Endpoint:
    """
    Mutable host/port/path triple with an always-consistent composed address.

    Every change recomposes ``url`` under a lock and publishes it with a single
    assignment, so a concurrent reader sees either the old or the new address,
    never a mix of both.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        path: str = DEFAULT_PATH,
    ):
        self._lock = threading.Lock()
        self._host, self._port, self._path = _validated(host, port, path)
        self._url = _compose(self._host, self._port, self._path)

    @property
    def host(self) -> str:
        return self._host

    @host.setter
    def host(self, value: str) -> None:
        self.update(host=value)

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, value: int) -> None:
        self.update(port=value)

    @property
    def path(self) -> str:
        return self._path

    @path.setter
    def path(self, value: str) -> None:
        self.update(path=value)

    @property
    def url(self) -> str:
        """The composed ``http://host:port/path`` address."""
        return self._url

    def update(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        path: Optional[str] = None,
    ) -> None:
        """Changes any subset of the fields as one step."""
        with self._lock:
            new_host, new_port, new_path = _validated(
                self._host if host is None else host,
                self._port if port is None else port,
                self._path if path is None else path,
            )
            if (new_host, new_port, new_path) == (self._host, self._port, self._path):
                return
            self._host, self._port, self._path = new_host, new_port, new_path
            self._url = _compose(new_host, new_port, new_path)

    def __repr__(self) -> str:
        return f"Endpoint({self._url!r})"


def _validated(host: str, port: int, path: str) -> tuple[str, int, str]:
    if not host:
        raise LocalContractViolation("Endpoint host cannot be empty.")
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise LocalContractViolation(
            f"Endpoint port must be an integer in 1-65535, got {port!r}."
        )
    if not path.startswith("/"):
        raise LocalContractViolation(f"Endpoint path must start with '/', got {path!r}.")
    return host, port, path


def _compose(host: str, port: int, path: str) -> str:
    return f"{SCHEME}://{host}:{port}{path}"
