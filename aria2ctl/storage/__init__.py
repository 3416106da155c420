"""
Storage Layer.

This package handles the client's own configuration file. The daemon's
configuration and session files are the daemon's business.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
