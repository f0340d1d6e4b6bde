"""Sequential, retrying access to a remote facade."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from workorder_sync.config_models import RetryConfig
from workorder_sync.domain.entities.remote import (
    RecordEdit,
    RemoteCredentials,
    RemoteHandle,
    RemoteServiceRecord,
)
from workorder_sync.domain.interfaces.remote_facade import IRemoteFacade
from workorder_sync.exceptions import AuthError, RemoteInteractionError
from workorder_sync.utils.logging import get_logger
from workorder_sync.utils.retry import call_with_retry

logger = get_logger(__name__)

T = TypeVar("T")

CredentialsSource = RemoteCredentials | Callable[[], RemoteCredentials]


class RemoteSession:
    """The one authenticated session every reconciler shares.

    - Logs in lazily on the first remote call, so a run with nothing to do
      makes no remote calls at all.
    - Serializes calls: the remote UI holds a single page state.
    - Retries RemoteInteractionError a bounded number of times with a fixed
      delay. Creates are only retried after checking they did not land.
    - On AuthError, logs in again and retries the call once; a second
      AuthError propagates.
    - StaleHandleError and everything else propagate unchanged.
    """

    def __init__(
        self,
        facade: IRemoteFacade,
        credentials: CredentialsSource,
        retry: RetryConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.facade = facade
        self._credentials = credentials
        self.retry = retry or RetryConfig()
        self._sleep = sleep
        self._lock = threading.RLock()
        self._authenticated = False
        self.login_count = 0

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    def _resolve_credentials(self) -> RemoteCredentials:
        if callable(self._credentials):
            return self._credentials()
        return self._credentials

    def _with_retry(self, func: Callable[..., T], *args: Any) -> T:
        return call_with_retry(
            func,
            *args,
            max_attempts=self.retry.max_attempts,
            delay=self.retry.delay_seconds,
            exceptions=(RemoteInteractionError,),
            sleep=self._sleep,
        )

    def login(self) -> None:
        with self._lock:
            credentials = self._resolve_credentials()
            self._authenticated = False
            self._with_retry(self.facade.login, credentials)
            self._authenticated = True
            self.login_count += 1
            logger.info("remote_login_succeeded", username=credentials.username)

    def _invoke(self, func: Callable[..., T], args: tuple[Any, ...], retry: bool) -> T:
        if retry:
            return self._with_retry(func, *args)
        return func(*args)

    def _call(
        self, operation: str, func: Callable[..., T], *args: Any, retry: bool = True
    ) -> T:
        with self._lock:
            if not self._authenticated:
                self.login()
            try:
                return self._invoke(func, args, retry)
            except AuthError as e:
                logger.warning(
                    "remote_session_expired", operation=operation, error=str(e)
                )
                self._authenticated = False
            self.login()
            return self._invoke(func, args, retry)

    def extract_service_records(self, work_order_id: str) -> list[RemoteServiceRecord]:
        records = self._call(
            "extract", self.facade.extract_service_records, work_order_id
        )
        logger.debug(
            "remote_records_extracted", work_order_id=work_order_id, count=len(records)
        )
        return records

    def create_service_record(
        self,
        work_order_id: str,
        verb_code: int,
        noun_code: int | None,
        timestamp: datetime,
        minutes: int,
        landed: Callable[[], bool] | None = None,
    ) -> None:
        """Create one service record without ever repeating it blindly.

        The UI can save a record and still fail before confirming it. After
        a failed attempt ``landed`` is asked whether the record is on the
        remote anyway; the create is only tried again when it is not.
        Without ``landed`` a failed create is not retried.
        """
        attempts = self.retry.max_attempts if landed is not None else 1
        for attempt in range(1, attempts + 1):
            try:
                self._call(
                    "create",
                    self.facade.create_service_record,
                    work_order_id,
                    verb_code,
                    noun_code,
                    timestamp,
                    minutes,
                    retry=False,
                )
                return
            except RemoteInteractionError as e:
                if landed is not None and landed():
                    logger.warning(
                        "remote_create_landed_despite_error",
                        work_order_id=work_order_id,
                        error=str(e),
                    )
                    return
                if attempt == attempts:
                    raise
                logger.warning(
                    "retry_attempt",
                    func="create_service_record",
                    attempt=attempt,
                    max_attempts=attempts,
                    delay=self.retry.delay_seconds,
                    error=str(e),
                )
                self._sleep(self.retry.delay_seconds)

    def edit_service_record(self, handle: RemoteHandle, edit: RecordEdit) -> None:
        self._call("edit", self.facade.edit_service_record, handle, edit)

    def delete_service_record(self, handle: RemoteHandle) -> None:
        self._call("delete", self.facade.delete_service_record, handle)
