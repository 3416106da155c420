"""
aria2 RPC Layer.

This package handles all communication with the aria2 daemon's JSON-RPC
interface: the HTTP transport, the async command facade, and its blocking
counterpart.
"""

from .blocking import BlockingAria2Client
from .client import Aria2Client
from .transport import JsonRpcTransport

__all__ = ["Aria2Client", "BlockingAria2Client", "JsonRpcTransport"]
