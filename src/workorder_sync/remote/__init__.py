"""Access to the remote maintenance system."""

from .factory import create_remote_facade
from .session import RemoteSession

__all__ = ["RemoteSession", "create_remote_facade"]
