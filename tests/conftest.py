"""Pytest configuration and fixtures for the test suite."""

from datetime import datetime
from pathlib import Path

import pytest

from workorder_sync.codes.resolver import CodeResolver
from workorder_sync.codes.vocabulary import VerbEntry, VocabularyTable
from workorder_sync.config_models import RetryConfig
from workorder_sync.domain.entities.remote import RemoteCredentials
from workorder_sync.domain.entities.service import EncodedService, WorkOrderBatch
from workorder_sync.notes.repository import NotesRepository
from workorder_sync.remote.session import RemoteSession
from tests.fixtures import MockRemoteFacade, MockStackStore

WORK_ORDER = "1234567"

VERBS_CSV = """verb_keyword,verb_code,has_noun
Analyzed,12,true
Replaced,15,true
Reviewed,20,false
"""

NOUNS_CSV = """noun_keyword,noun_code
Unit,7
Valve,9
"""


@pytest.fixture
def vocabulary():
    """Provide a small verb/noun vocabulary."""
    return VocabularyTable(
        verbs={
            "Analyzed": VerbEntry(code=12, requires_noun=True),
            "Replaced": VerbEntry(code=15, requires_noun=True),
            "Reviewed": VerbEntry(code=20, requires_noun=False),
        },
        nouns={"Unit": 7, "Valve": 9},
    )


@pytest.fixture
def resolver(vocabulary):
    """Provide a code resolver over the sample vocabulary."""
    return CodeResolver(vocabulary)


@pytest.fixture
def tables_dir(tmp_path) -> Path:
    """Directory containing verbs.csv and nouns.csv."""
    path = tmp_path / "tables"
    path.mkdir()
    (path / "verbs.csv").write_text(VERBS_CSV, encoding="utf-8")
    (path / "nouns.csv").write_text(NOUNS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def work_orders_dir(tmp_path) -> Path:
    """Empty work orders directory."""
    path = tmp_path / "work_orders"
    path.mkdir()
    return path


@pytest.fixture
def notes_repository(work_orders_dir):
    """Provide a notes repository rooted in a temporary directory."""
    return NotesRepository(work_orders_dir)


@pytest.fixture
def write_notes(work_orders_dir):
    """Write a notes file for a work order and return its path."""

    def _write(text: str, work_order_id: str = WORK_ORDER) -> Path:
        folder = work_orders_dir / work_order_id
        folder.mkdir(exist_ok=True)
        path = folder / f"{work_order_id}_notes.md"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def mock_facade():
    """Provide an in-memory remote facade."""
    return MockRemoteFacade()


@pytest.fixture
def mock_stack_store():
    """Provide an in-memory stack store."""
    return MockStackStore()


@pytest.fixture
def session(mock_facade):
    """Remote session over the mock facade that never sleeps."""
    return RemoteSession(
        mock_facade,
        RemoteCredentials(username="tech", password="secret"),
        retry=RetryConfig(max_attempts=3, delay_seconds=0),
        sleep=lambda _seconds: None,
    )


@pytest.fixture
def make_service():
    """Build an EncodedService with sensible defaults."""

    def _make(
        timestamp: datetime,
        verb_code: int = 12,
        noun_code: int | None = 7,
        note: str = "checked unit",
        elapsed_minutes: int = 20,
        **kwargs,
    ) -> EncodedService:
        return EncodedService(
            verb_code=verb_code,
            noun_code=noun_code,
            timestamp=timestamp,
            note=note,
            elapsed_minutes=elapsed_minutes,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_batch():
    """Build a WorkOrderBatch from services."""

    def _make(services, work_order_id: str = WORK_ORDER, **kwargs) -> WorkOrderBatch:
        return WorkOrderBatch(work_order_id=work_order_id, services=services, **kwargs)

    return _make
