"""
Pydantic model for client configuration.
Provides robust validation for all settings.
"""

import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .endpoint import DEFAULT_HOST, DEFAULT_PATH, DEFAULT_PORT, Endpoint

DAEMON_EXECUTABLE = "aria2c.exe" if os.name == "nt" else "aria2c"
DEFAULT_DAEMON_ARGUMENTS = ["--conf-path=aria2.conf"]


class ClientSettings(BaseModel):
    """A validated configuration model for the client and the supervisor."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # RPC endpoint
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    secret: str = Field(default="", repr=False)
    timeout: float = 0.0

    # Daemon process
    executable: str = ""
    arguments: list[str] = Field(default_factory=list)
    working_directory: str = ""
    hide_window: bool = True

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        if not v:
            raise ValueError("Host cannot be empty.")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Ensures the port is a usable TCP port."""
        if v < 1 or v > 65535:
            raise ValueError("Port must be between 1 and 65535.")
        return v

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("RPC path must start with '/'.")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """A timeout of 0 means the client waits as long as the daemon takes."""
        if v < 0:
            raise ValueError("Timeout cannot be negative.")
        return v

    def endpoint(self) -> Endpoint:
        return Endpoint(self.host, self.port, self.path)

    @classmethod
    def get_ini_keys(cls) -> list[str]:
        """Returns all keys that are expected in the INI file, in model order."""
        return list(cls.model_fields)
