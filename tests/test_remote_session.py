"""Tests for the shared remote session, handles and remote formats."""

from datetime import datetime

import pytest

from workorder_sync.config import Config
from workorder_sync.config_models import RetryConfig
from workorder_sync.domain.entities.remote import RecordEdit, RemoteCredentials
from workorder_sync.exceptions import (
    AuthError,
    ConfigurationError,
    RemoteInteractionError,
    StaleHandleError,
)
from workorder_sync.remote.factory import create_remote_facade, load_facade_factory
from workorder_sync.remote.formats import (
    format_remote_datetime,
    parse_remote_datetime,
    parse_service_row,
)
from workorder_sync.remote.session import RemoteSession
from tests.fixtures import MockRemoteFacade

WORK_ORDER = "1234567"
T0 = datetime(2025, 4, 7, 0, 39)


class TestRemoteSession:
    """Test login, retry and re-authentication behaviour."""

    def test_logs_in_lazily_once(self, session, mock_facade):
        assert mock_facade.login_attempts == 0

        session.extract_service_records(WORK_ORDER)
        session.extract_service_records(WORK_ORDER)

        assert mock_facade.login_attempts == 1
        assert session.authenticated

    def test_credentials_from_callable(self, mock_facade):
        calls = []

        def credentials():
            calls.append(1)
            return RemoteCredentials(username="tech", password="secret")

        session = RemoteSession(mock_facade, credentials, sleep=lambda _s: None)
        session.extract_service_records(WORK_ORDER)

        assert calls == [1]

    def test_retries_interaction_errors_with_fixed_delay(self, mock_facade):
        delays = []
        session = RemoteSession(
            mock_facade,
            RemoteCredentials(username="tech", password="secret"),
            retry=RetryConfig(max_attempts=3, delay_seconds=1.5),
            sleep=delays.append,
        )
        mock_facade.fail_next("extract", RemoteInteractionError("blip"), times=2)

        assert session.extract_service_records(WORK_ORDER) == []
        assert delays == [1.5, 1.5]

    def test_gives_up_after_max_attempts(self, session, mock_facade):
        mock_facade.fail_next("extract", RemoteInteractionError("blip"), times=3)

        with pytest.raises(RemoteInteractionError):
            session.extract_service_records(WORK_ORDER)
        assert mock_facade.call_count("extract") == 3

    def test_relogs_in_on_expired_session(self, session, mock_facade):
        session.login()
        mock_facade.expire_session()

        session.extract_service_records(WORK_ORDER)

        assert session.login_count == 2

    def test_second_auth_error_propagates(self, session, mock_facade):
        session.login()
        mock_facade.fail_next("extract", AuthError("expired"), times=2)

        with pytest.raises(AuthError):
            session.extract_service_records(WORK_ORDER)
        assert session.login_count == 2

    def test_rejected_login(self, mock_facade):
        mock_facade.password = "right"
        session = RemoteSession(
            mock_facade, RemoteCredentials(username="tech", password="wrong")
        )

        with pytest.raises(AuthError):
            session.login()
        assert not session.authenticated

    def test_stale_handle_rejected(self, session, mock_facade):
        mock_facade.seed(WORK_ORDER, T0, 21, "Analyzed Unit")
        mock_facade.seed(WORK_ORDER, T0, 21, "Analyzed Unit")
        first, second = session.extract_service_records(WORK_ORDER)

        session.delete_service_record(second.handle)

        with pytest.raises(StaleHandleError):
            session.delete_service_record(first.handle)
        assert len(mock_facade.rows(WORK_ORDER)) == 1

    def test_edit_with_fresh_handle(self, session, mock_facade):
        mock_facade.seed(WORK_ORDER, T0, 21, "Analyzed Unit")
        record = session.extract_service_records(WORK_ORDER)[0]

        session.edit_service_record(record.handle, RecordEdit(elapsed_minutes=0))

        assert mock_facade.rows(WORK_ORDER)[0][2] == 0


class TestRecordEdit:
    """Test edit validation."""

    def test_requires_a_field(self):
        with pytest.raises(ValueError):
            RecordEdit()

    def test_rejects_negative_minutes(self):
        with pytest.raises(ValueError):
            RecordEdit(elapsed_minutes=-1)


class TestRemoteFormats:
    """Test the remote grid's date and row formats."""

    def test_format_datetime(self):
        assert format_remote_datetime(T0) == "4/7/2025 12:39 AM"
        afternoon = datetime(2025, 12, 31, 13, 5)
        noon = datetime(2025, 1, 2, 12, 0)
        assert format_remote_datetime(afternoon) == "12/31/2025 1:05 PM"
        assert format_remote_datetime(noon) == "1/2/2025 12:00 PM"

    def test_parse_datetime(self):
        assert parse_remote_datetime("4/7/2025 12:39 AM") == T0
        expected = datetime(2025, 12, 31, 13, 5)
        assert parse_remote_datetime("12/31/2025 1:05 pm") == expected

    @pytest.mark.parametrize(
        "text", ["2025-04-07 00:39", "4/7/2025 13:00 PM", "2/30/2025 1:00 AM"]
    )
    def test_parse_datetime_invalid(self, text):
        with pytest.raises(ValueError):
            parse_remote_datetime(text)

    def test_parse_service_row(self):
        row = parse_service_row("- 4/7/2025 12:39 AM - 21 Minutes - Analyzed Unit")

        assert row == (T0, 21, "Analyzed Unit")

    def test_parse_service_row_rejects_other_text(self):
        assert parse_service_row("Service History") is None


class TestFacadeFactory:
    """Test loading the configured facade."""

    def test_not_configured(self):
        with pytest.raises(ConfigurationError):
            create_remote_facade(Config())

    def test_bad_path(self):
        with pytest.raises(ConfigurationError):
            load_facade_factory("no_colon_here")

    def test_missing_module(self):
        with pytest.raises(ConfigurationError):
            load_facade_factory("workorder_sync_missing_module:Facade")

    def test_creates_facade(self):
        config = Config(
            remote_facade="tests.fixtures.mock_remote_facade:MockRemoteFacade"
        )

        facade = create_remote_facade(config)

        assert isinstance(facade, MockRemoteFacade)

    def test_rejects_non_facade(self):
        config = Config(remote_facade="builtins:str")

        with pytest.raises(ConfigurationError):
            create_remote_facade(config)
