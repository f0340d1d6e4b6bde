"""Test fixtures package."""

from .mock_remote_facade import MockRemoteFacade
from .mock_stack_store import MockStackStore

__all__ = [
    "MockRemoteFacade",
    "MockStackStore",
]
