"""Tests for pushing stacked services to the remote system."""

from datetime import datetime

import pytest

from workorder_sync.domain.entities.remote import RemoteHandle, RemoteServiceRecord
from workorder_sync.domain.entities.service import PushState
from workorder_sync.exceptions import AuthError, RemoteInteractionError
from workorder_sync.notes.parser import SYNCED_MARKER
from workorder_sync.sync.cancellation import CancellationToken
from workorder_sync.sync.push import PushReconciler, matches_service

WORK_ORDER = "1234567"
T0 = datetime(2025, 3, 1, 9, 0)
T1 = datetime(2025, 3, 1, 9, 30)


@pytest.fixture
def stacked(mock_stack_store, make_service, make_batch):
    """Stack with one work order holding two pending services."""
    mock_stack_store.upsert(
        make_batch(
            [
                make_service(T0, note="first"),
                make_service(T1, verb_code=20, noun_code=None, note="second"),
            ]
        )
    )
    mock_stack_store.writes = 0
    return mock_stack_store


def _states(store, work_order_id=WORK_ORDER):
    return [s.push_state for s in store.get(work_order_id).services]


class TestMatchesService:
    """Test read-back matching of remote rows."""

    def _record(self, timestamp, verb_code=None, description="Code 12"):
        return RemoteServiceRecord(
            handle=RemoteHandle(WORK_ORDER, 0, "0"),
            servicer="Jane Doe",
            timestamp=timestamp,
            elapsed_minutes=20,
            description=description,
            verb_code=verb_code,
        )

    def test_matches_on_date_and_verb_code(self, make_service):
        service = make_service(T0)

        assert matches_service(self._record(datetime(2025, 3, 1, 15, 0), 12), service)
        assert not matches_service(self._record(datetime(2025, 3, 2, 9, 0), 12), service)
        assert not matches_service(self._record(T0, 15), service)

    def test_falls_back_to_description(self, make_service):
        service = make_service(T0)

        assert matches_service(self._record(T0, None, "Code 12 / 7"), service)
        assert not matches_service(self._record(T0, None, "Code 15"), service)


class TestPushReconciler:
    """Test the push loop."""

    def test_pushes_all_pending(self, stacked, session, mock_facade):
        report = PushReconciler(stacked, session).run()

        assert report.succeeded == 2
        assert report.success
        assert _states(stacked) == [PushState.PUSHED, PushState.PUSHED]
        assert mock_facade.call_count("create") == 2
        assert len(mock_facade.rows(WORK_ORDER)) == 2

    def test_persists_after_every_entry(self, stacked, session):
        PushReconciler(stacked, session).run()

        assert stacked.writes == 2

    def test_pushed_services_are_not_sent_again(self, stacked, session, mock_facade):
        PushReconciler(stacked, session).run()
        report = PushReconciler(stacked, session).run()

        assert report.succeeded == 0
        assert report.skipped == 2
        assert mock_facade.call_count("create") == 2

    def test_transient_failure_is_retried(self, stacked, session, mock_facade):
        mock_facade.fail_next("create", RemoteInteractionError("timeout"))

        report = PushReconciler(stacked, session).run()

        assert report.succeeded == 2
        assert mock_facade.call_count("create") == 3

    def test_persistent_failure_leaves_entry_pending(
        self, stacked, session, mock_facade
    ):
        mock_facade.fail_next("create", RemoteInteractionError("timeout"), times=3)

        report = PushReconciler(stacked, session).run()

        assert report.succeeded == 1
        assert report.failed == 1
        assert report.partial_success
        assert _states(stacked) == [PushState.PENDING, PushState.PUSHED]
        failed = stacked.get(WORK_ORDER).services[0]
        assert failed.push_attempts == 1
        assert failed.last_error == "timeout"
        assert not failed.needs_review

    def test_unverified_create_flags_review(self, stacked, session, mock_facade):
        mock_facade.ignore_creates = True

        report = PushReconciler(stacked, session).run()

        assert report.succeeded == 0
        assert all(f.needs_review for f in report.failed_operations)
        assert report.summary()["needs_review"] == 2
        services = stacked.get(WORK_ORDER).services
        assert all(s.is_pending and s.needs_review for s in services)

    def test_existing_match_does_not_count_as_verification(
        self, stacked, session, mock_facade
    ):
        mock_facade.seed(WORK_ORDER, T0, 20, "Code 12 / 7", verb_code=12)
        mock_facade.ignore_creates = True

        report = PushReconciler(stacked, session).run()

        assert report.succeeded == 0
        assert report.failed == 2

    def test_dry_run_makes_no_remote_calls(self, stacked, session, mock_facade):
        report = PushReconciler(stacked, session).run(dry_run=True)

        assert len(report.planned) == 2
        assert report.planned[0].startswith(f"{WORK_ORDER}: 2025-03-01 09:00 verb 12")
        assert mock_facade.calls == []
        assert _states(stacked) == [PushState.PENDING, PushState.PENDING]

    def test_persistence_failure_aborts(self, stacked, session, mock_facade):
        stacked.fail_after_writes = 0

        report = PushReconciler(stacked, session).run()

        assert report.aborted is not None
        assert not report.success
        assert mock_facade.call_count("create") == 1

    def test_rejected_login_aborts(self, stacked, mock_facade, session):
        mock_facade.password = "other"

        report = PushReconciler(stacked, session).run()

        assert report.aborted is not None
        assert mock_facade.call_count("create") == 0

    def test_cancellation_stops_before_next_entry(self, stacked, session, mock_facade):
        token = CancellationToken()
        reconciler = PushReconciler(stacked, session, cancellation=token)
        original = mock_facade.create_service_record

        def create_then_cancel(*args):
            original(*args)
            token.cancel()

        mock_facade.create_service_record = create_then_cancel
        report = reconciler.run()

        assert report.cancelled
        assert report.succeeded == 1
        assert _states(stacked) == [PushState.PUSHED, PushState.PENDING]

    def test_only_selected_work_orders(
        self, stacked, session, mock_facade, make_service, make_batch
    ):
        stacked.upsert(make_batch([make_service(T0)], work_order_id="7654321"))

        report = PushReconciler(stacked, session).run(work_order_ids=["7654321"])

        assert report.succeeded == 1
        assert mock_facade.rows(WORK_ORDER) == []
        assert _states(stacked, "7654321") == [PushState.PUSHED]

    def test_marks_notes_for_pushed_entries(
        self, stacked, session, notes_repository, write_notes
    ):
        path = write_notes(
            "START/RESUME TIME: 2025-03-01 08:40\n"
            "[Analyzed, Unit] (2025-03-01 09:00) => first\n"
            "[Reviewed] (2025-03-01 09:30) => second\n"
        )

        report = PushReconciler(stacked, session, notes=notes_repository).run()

        assert report.warnings == []
        assert path.read_text(encoding="utf-8").count(SYNCED_MARKER) == 2

    def test_missing_notes_file_is_a_warning(self, stacked, session, notes_repository):
        report = PushReconciler(stacked, session, notes=notes_repository).run()

        assert report.succeeded == 2
        assert len(report.warnings) == 1

    def test_session_expiry_relogs_once(self, stacked, session, mock_facade):
        session.login()
        mock_facade.expire_session()

        report = PushReconciler(stacked, session).run()

        assert report.succeeded == 2
        assert session.login_count == 2

    def test_expired_auth_during_run_is_fatal_when_relogin_fails(
        self, stacked, session, mock_facade
    ):
        session.login()
        mock_facade.expire_session()
        mock_facade.fail_next("login", AuthError("locked out"))

        report = PushReconciler(stacked, session).run()

        assert report.aborted is not None
        assert _states(stacked) == [PushState.PENDING, PushState.PENDING]

    def test_create_that_landed_despite_error_is_not_repeated(
        self, stacked, session, mock_facade
    ):
        """Test that a create which saved but failed to confirm is not sent twice."""
        mock_facade.fail_after_next("create", RemoteInteractionError("no confirmation"))

        report = PushReconciler(stacked, session).run()

        assert report.succeeded == 2
        assert mock_facade.call_count("create") == 2
        assert len(mock_facade.rows(WORK_ORDER)) == 2
        assert _states(stacked) == [PushState.PUSHED, PushState.PUSHED]

    def test_more_than_one_new_record_flags_review(
        self, stacked, session, mock_facade
    ):
        """Test that a create leaving two matching records needs review."""
        original = mock_facade.create_service_record

        def create_twice(*args):
            original(*args)
            original(*args)

        mock_facade.create_service_record = create_twice

        report = PushReconciler(stacked, session).run(work_order_ids=[WORK_ORDER])

        assert report.succeeded == 0
        assert report.failed_operations[0].needs_review
        assert "2 new records" in report.failed_operations[0].error
        assert stacked.get(WORK_ORDER).services[0].is_pending


class TestResumablePush:
    """Test that an interrupted push resumes where it stopped."""

    def test_fresh_run_pushes_only_the_remaining_entries(
        self, mock_stack_store, make_service, make_batch, session, mock_facade
    ):
        times = [T0, datetime(2025, 3, 1, 9, 20), datetime(2025, 3, 1, 9, 40)]
        mock_stack_store.upsert(
            make_batch([make_service(t, note=f"entry {i}") for i, t in enumerate(times)])
        )
        token = CancellationToken()
        original = mock_facade.create_service_record

        def create_then_cancel(*args):
            original(*args)
            token.cancel()

        mock_facade.create_service_record = create_then_cancel
        first = PushReconciler(mock_stack_store, session, cancellation=token).run()
        mock_facade.create_service_record = original

        assert first.cancelled
        assert first.succeeded == 1

        second = PushReconciler(mock_stack_store, session).run()

        assert second.succeeded == 2
        assert second.skipped == 1
        assert mock_facade.call_count("create") == 3
        assert len(mock_facade.rows(WORK_ORDER)) == 3
        assert _states(mock_stack_store) == [PushState.PUSHED] * 3
