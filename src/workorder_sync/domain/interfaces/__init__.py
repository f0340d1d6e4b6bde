"""Interfaces the sync engine depends on."""

from .remote_facade import IRemoteFacade
from .stack_store import IStackStore

__all__ = ["IRemoteFacade", "IStackStore"]
