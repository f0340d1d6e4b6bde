"""Tests for the JSON stack store and the stacked entities."""

import json
from datetime import datetime
from unittest.mock import patch

import pytest

from workorder_sync.domain.entities.service import PushState, WorkOrderBatch
from workorder_sync.exceptions import PersistenceError
from workorder_sync.sync.stack_store import JsonStackStore

T0 = datetime(2025, 3, 1, 9, 0)


@pytest.fixture
def stack_path(tmp_path):
    return tmp_path / "data" / "service_stack.json"


class TestWorkOrderBatch:
    """Test batch validation and derived fields."""

    def test_rejects_bad_work_order_id(self):
        with pytest.raises(ValueError):
            WorkOrderBatch(work_order_id="12345")

    def test_control_number_must_be_eight_digits(self):
        assert WorkOrderBatch(work_order_id="1234567", control_number="").control_number is None
        with pytest.raises(ValueError):
            WorkOrderBatch(work_order_id="1234567", control_number="123")

    def test_combined_note(self, make_service, make_batch):
        batch = make_batch(
            [
                make_service(T0, note="first"),
                make_service(datetime(2025, 3, 1, 9, 30), note="second"),
            ]
        )

        assert batch.combined_note == "2025-03-01 09:00\nfirst\n\n2025-03-01 09:30\nsecond"

    def test_elapsed_minutes_must_be_positive(self, make_service):
        with pytest.raises(ValueError):
            make_service(T0, elapsed_minutes=0)

    def test_merge_push_state(self, make_service, make_batch):
        previous = make_batch(
            [make_service(T0, note="a"), make_service(T0, note="b")],
            control_number="12345678",
        )
        previous.services[0].mark_pushed()
        previous.services[1].record_failure("boom", needs_review=True)

        rebuilt = make_batch(
            [
                make_service(T0, note="a"),
                make_service(T0, note="b"),
                make_service(T0, note="c"),
            ]
        )
        carried = rebuilt.merge_push_state(previous)

        assert carried == 1
        assert rebuilt.control_number == "12345678"
        assert [s.push_state for s in rebuilt.services] == [
            PushState.PUSHED,
            PushState.PENDING,
            PushState.PENDING,
        ]
        assert rebuilt.services[1].needs_review
        assert rebuilt.services[1].push_attempts == 1
        assert rebuilt.services[2].push_attempts == 0

    def test_merge_with_nothing_previous(self, make_service, make_batch):
        batch = make_batch([make_service(T0)])

        assert batch.merge_push_state(None) == 0
        assert batch.services[0].is_pending


class TestJsonStackStore:
    """Test persistence of the stack."""

    def test_missing_file_is_empty_stack(self, stack_path):
        store = JsonStackStore(stack_path)

        assert store.get_all() == []
        assert store.get("1234567") is None

    def test_upsert_persists(self, stack_path, make_service, make_batch):
        store = JsonStackStore(stack_path)
        store.upsert(make_batch([make_service(T0)]))

        reloaded = JsonStackStore(stack_path)
        batch = reloaded.get("1234567")
        assert batch is not None
        assert batch.services[0].verb_code == 12
        assert batch.services[0].push_state is PushState.PENDING

    def test_file_format(self, stack_path, make_service, make_batch):
        store = JsonStackStore(stack_path)
        store.upsert(make_batch([make_service(T0)], control_number="12345678"))

        data = json.loads(stack_path.read_text(encoding="utf-8"))
        assert data[0]["work_order_id"] == "1234567"
        assert data[0]["control_number"] == "12345678"
        assert data[0]["combined_note"] == "2025-03-01 09:00\nchecked unit"
        assert data[0]["services"][0]["push_state"] == "Pending"

    def test_upsert_replaces_in_place(self, stack_path, make_service, make_batch):
        store = JsonStackStore(stack_path)
        store.upsert(make_batch([make_service(T0)], work_order_id="1111111"))
        store.upsert(make_batch([make_service(T0)], work_order_id="2222222"))
        store.upsert(
            make_batch([make_service(T0), make_service(T0)], work_order_id="1111111")
        )

        batches = store.get_all()
        assert [b.work_order_id for b in batches] == ["1111111", "2222222"]
        assert len(batches[0].services) == 2

    def test_returned_batches_are_copies(self, stack_path, make_service, make_batch):
        store = JsonStackStore(stack_path)
        store.upsert(make_batch([make_service(T0)]))

        batch = store.get("1234567")
        batch.services[0].mark_pushed()

        assert store.get("1234567").services[0].is_pending

    def test_remove_and_clear(self, stack_path, make_service, make_batch):
        store = JsonStackStore(stack_path)
        store.upsert(make_batch([make_service(T0)], work_order_id="1111111"))
        store.upsert(make_batch([make_service(T0)], work_order_id="2222222"))

        assert store.remove("1111111") is True
        assert store.remove("1111111") is False
        assert [b.work_order_id for b in JsonStackStore(stack_path).get_all()] == [
            "2222222"
        ]

        store.clear()
        assert JsonStackStore(stack_path).get_all() == []

    def test_empty_file_is_empty_stack(self, stack_path):
        stack_path.parent.mkdir(parents=True)
        stack_path.write_text("  \n", encoding="utf-8")

        assert JsonStackStore(stack_path).get_all() == []

    def test_corrupt_file(self, stack_path):
        stack_path.parent.mkdir(parents=True)
        stack_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            JsonStackStore(stack_path)

    def test_duplicate_work_orders_rejected(self, stack_path, make_service, make_batch):
        batch = make_batch([make_service(T0)])
        payload = json.dumps([batch.model_dump(mode="json")] * 2)
        stack_path.parent.mkdir(parents=True)
        stack_path.write_text(payload, encoding="utf-8")

        with pytest.raises(PersistenceError):
            JsonStackStore(stack_path)

    def test_write_failure_leaves_memory_unchanged(
        self, stack_path, make_service, make_batch
    ):
        store = JsonStackStore(stack_path)
        store.upsert(make_batch([make_service(T0)], work_order_id="1111111"))

        with patch(
            "workorder_sync.sync.stack_store.atomic_write",
            side_effect=OSError("disk full"),
        ):
            with pytest.raises(PersistenceError):
                store.upsert(make_batch([make_service(T0)], work_order_id="2222222"))

        assert [b.work_order_id for b in store.get_all()] == ["1111111"]
        assert [b.work_order_id for b in JsonStackStore(stack_path).get_all()] == [
            "1111111"
        ]
