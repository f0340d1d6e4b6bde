"""Verb/noun code tables and entry resolution."""

from .resolver import CodeResolver, ResolutionResult
from .vocabulary import VerbEntry, VocabularyTable

__all__ = [
    "CodeResolver",
    "ResolutionResult",
    "VerbEntry",
    "VocabularyTable",
]
