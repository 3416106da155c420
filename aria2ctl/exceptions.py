"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

from typing import Any, Optional


class Aria2CtlError(Exception):
    """Base exception for all application-specific errors."""

    reason: str = "error"


class TransportFault(Aria2CtlError):
    """
    Raised when the RPC round trip itself fails: the daemon is unreachable,
    the request timed out, or the response could not be decoded.
    """

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class ProtocolFault(Aria2CtlError):
    """
    Raised when the daemon answers with an error payload, or with a success
    payload that does not match what the called method promises.
    """

    reason = "protocol_error"

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        message = super().__str__()
        if self.code is None:
            return message
        return f"[{self.code}] {message}"


class LocalContractViolation(Aria2CtlError, ValueError):
    """Raised for invalid local input, before anything is sent to the daemon."""

    reason = "invalid_argument"


class NotSupportedError(Aria2CtlError, NotImplementedError):
    """Raised by RPC operations this client deliberately does not implement."""

    reason = "not_supported"


class ConfigurationError(Aria2CtlError):
    """Raised for issues related to configuration loading or validation."""

    reason = "configuration_error"


class SupervisorError(Aria2CtlError):
    """Raised when the daemon executable cannot be launched."""

    reason = "launch_failed"
