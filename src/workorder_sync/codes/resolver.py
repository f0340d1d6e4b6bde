"""Resolve timed entries to verb/noun codes."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from workorder_sync.domain.entities.diagnostic import Diagnostic
from workorder_sync.domain.entities.entries import TimedEntry
from workorder_sync.domain.entities.service import EncodedService
from workorder_sync.error_codes import ErrorCode
from workorder_sync.utils.logging import get_logger

from .vocabulary import VocabularyTable

logger = get_logger(__name__)


@dataclass
class ResolutionResult:
    """Encoded services plus a diagnostic for every rejected entry."""

    services: list[EncodedService] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


class CodeResolver:
    """Maps verb/noun keywords to codes using a VocabularyTable.

    Matching is exact after trimming and case-sensitive. An entry that
    cannot be encoded is dropped with a diagnostic and its siblings are
    still resolved.
    """

    def __init__(self, vocabulary: VocabularyTable) -> None:
        self.vocabulary = vocabulary

    def resolve(self, entries: Iterable[TimedEntry]) -> ResolutionResult:
        result = ResolutionResult()
        for timed in entries:
            service = self._resolve_one(timed, result.diagnostics)
            if service is not None:
                result.services.append(service)
        return result

    def _resolve_one(
        self, timed: TimedEntry, diagnostics: list[Diagnostic]
    ) -> EncodedService | None:
        entry = timed.entry

        def reject(code: ErrorCode, message: str) -> None:
            diagnostics.append(
                Diagnostic(
                    code=code,
                    message=message,
                    line_number=entry.line_number,
                    timestamp=entry.timestamp,
                )
            )
            logger.warning(
                "entry_rejected",
                reason=code.value,
                verb=entry.verb,
                noun=entry.noun,
                line=entry.line_number,
            )

        verb = self.vocabulary.find_verb(entry.verb)
        if verb is None:
            reject(ErrorCode.VAL_UNKNOWN_VERB, f"Unknown verb {entry.verb.strip()!r}")
            return None

        noun_code: int | None = None
        if verb.requires_noun:
            if entry.noun is None:
                reject(
                    ErrorCode.VAL_MISSING_NOUN,
                    f"Verb {entry.verb.strip()!r} requires a noun",
                )
                return None
            noun_code = self.vocabulary.find_noun(entry.noun)
            if noun_code is None:
                reject(
                    ErrorCode.VAL_UNKNOWN_NOUN, f"Unknown noun {entry.noun.strip()!r}"
                )
                return None
        elif entry.noun is not None:
            logger.debug(
                "noun_ignored", verb=entry.verb, noun=entry.noun, line=entry.line_number
            )

        return EncodedService(
            verb_code=verb.code,
            noun_code=noun_code,
            timestamp=entry.timestamp,
            note=entry.note,
            elapsed_minutes=timed.elapsed_minutes,
        )
