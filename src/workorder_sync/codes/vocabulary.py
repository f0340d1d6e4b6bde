"""Verb and noun vocabulary loaded from the CSV code tables."""

from __future__ import annotations

import csv
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from workorder_sync.error_codes import ErrorCode
from workorder_sync.exceptions import VocabularyError
from workorder_sync.utils.logging import get_logger

logger = get_logger(__name__)

VERBS_FILE = "verbs.csv"
NOUNS_FILE = "nouns.csv"

_TRUE_VALUES = {"true", "1", "yes", "y"}
_FALSE_VALUES = {"false", "0", "no", "n", ""}


@dataclass(frozen=True)
class VerbEntry:
    """Code for a verb keyword and whether it must be followed by a noun."""

    code: int
    requires_noun: bool


class VocabularyTable:
    """Immutable keyword -> code lookup for verbs and nouns.

    Keys are stored trimmed and matched case-sensitively.
    """

    def __init__(
        self,
        verbs: Mapping[str, VerbEntry],
        nouns: Mapping[str, int],
    ) -> None:
        self._verbs: Mapping[str, VerbEntry] = MappingProxyType(dict(verbs))
        self._nouns: Mapping[str, int] = MappingProxyType(dict(nouns))

    @classmethod
    def from_rows(
        cls,
        verb_rows: Iterable[Mapping[str, object]],
        noun_rows: Iterable[Mapping[str, object]],
    ) -> VocabularyTable:
        """Build a table from already-parsed rows.

        Verb rows need ``verb_keyword``, ``verb_code`` and ``has_noun``; noun
        rows need ``noun_keyword`` and ``noun_code``. Rows with a blank
        keyword or code are skipped. A keyword that appears twice keeps the
        later row.
        """
        verbs: dict[str, VerbEntry] = {}
        for index, row in enumerate(verb_rows, start=2):
            keyword = _cell(row, "verb_keyword")
            code = _cell(row, "verb_code")
            if not keyword or not code:
                continue
            if keyword in verbs:
                logger.warning(
                    "duplicate_vocabulary_keyword", kind="verb", keyword=keyword
                )
            verbs[keyword] = VerbEntry(
                code=_parse_code(code, VERBS_FILE, index),
                requires_noun=_parse_flag(_cell(row, "has_noun"), index),
            )

        nouns: dict[str, int] = {}
        for index, row in enumerate(noun_rows, start=2):
            keyword = _cell(row, "noun_keyword")
            code = _cell(row, "noun_code")
            if not keyword or not code:
                continue
            if keyword in nouns:
                logger.warning(
                    "duplicate_vocabulary_keyword", kind="noun", keyword=keyword
                )
            nouns[keyword] = _parse_code(code, NOUNS_FILE, index)

        return cls(verbs, nouns)

    @classmethod
    def from_csv(cls, tables_dir: Path) -> VocabularyTable:
        """Load ``verbs.csv`` and ``nouns.csv`` from a directory.

        Raises:
            VocabularyError: If a table is missing, unreadable or malformed
        """
        verb_rows = _read_csv(tables_dir / VERBS_FILE, ("verb_keyword", "verb_code"))
        noun_rows = _read_csv(tables_dir / NOUNS_FILE, ("noun_keyword", "noun_code"))
        table = cls.from_rows(verb_rows, noun_rows)
        logger.info(
            "vocabulary_loaded",
            tables_dir=str(tables_dir),
            verbs=len(table._verbs),
            nouns=len(table._nouns),
        )
        return table

    def find_verb(self, keyword: str) -> VerbEntry | None:
        return self._verbs.get(keyword.strip())

    def find_noun(self, keyword: str) -> int | None:
        return self._nouns.get(keyword.strip())

    @property
    def verb_keywords(self) -> list[str]:
        return list(self._verbs)

    @property
    def noun_keywords(self) -> list[str]:
        return list(self._nouns)

    def __len__(self) -> int:
        return len(self._verbs) + len(self._nouns)


def _cell(row: Mapping[str, object], key: str) -> str:
    value = row.get(key)
    return "" if value is None else str(value).strip()


def _parse_code(value: str, source: str, line: int) -> int:
    try:
        return int(value)
    except ValueError as e:
        msg = f"Non-numeric code {value!r} in {source} line {line}"
        raise VocabularyError(
            msg,
            suggestion="Codes must be whole numbers",
            error_code=ErrorCode.CFG_VOCABULARY_INVALID.value,
            context={"file": source, "line": line},
        ) from e


def _parse_flag(value: str, line: int) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    msg = f"Invalid has_noun value {value!r} in {VERBS_FILE} line {line}"
    raise VocabularyError(
        msg,
        suggestion="Use true/false",
        error_code=ErrorCode.CFG_VOCABULARY_INVALID.value,
        context={"file": VERBS_FILE, "line": line},
    )


def _read_csv(path: Path, required: tuple[str, ...]) -> list[dict[str, str]]:
    try:
        with open(path, encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            header = [name.strip() for name in reader.fieldnames or []]
            missing = [name for name in required if name not in header]
            if missing:
                msg = f"{path.name} is missing columns: {', '.join(missing)}"
                raise VocabularyError(
                    msg,
                    suggestion=f"Expected header: {','.join(required)}",
                    error_code=ErrorCode.CFG_VOCABULARY_INVALID.value,
                    context={"path": str(path)},
                )
            return [
                {(k or "").strip(): v for k, v in row.items()}
                for row in reader
            ]
    except OSError as e:
        msg = f"Cannot read code table: {path}"
        raise VocabularyError(
            msg,
            suggestion="Check tables_dir in config.yaml",
            error_code=ErrorCode.CFG_VOCABULARY_INVALID.value,
            context={"path": str(path)},
        ) from e
