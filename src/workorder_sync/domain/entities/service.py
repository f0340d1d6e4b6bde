"""Encoded services and per-work-order batches held on the stack."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

WORK_ORDER_ID_RE = re.compile(r"^\d{7}$")
CONTROL_NUMBER_RE = re.compile(r"^\d{8}$")

# Timestamp layout used in notes, combined notes and stack display
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


class PushState(str, Enum):
    """Push lifecycle of one encoded service."""

    PENDING = "Pending"
    PUSHED = "Pushed"


ServiceKey = tuple[int, int | None, datetime, str]


class EncodedService(BaseModel):
    """A log entry resolved to remote codes, ready to push."""

    model_config = ConfigDict(validate_assignment=True)

    verb_code: int
    noun_code: int | None = None
    timestamp: datetime
    note: str
    elapsed_minutes: int = Field(gt=0)
    push_state: PushState = PushState.PENDING
    push_attempts: int = Field(default=0, ge=0)
    last_error: str | None = None
    needs_review: bool = False

    @property
    def is_pending(self) -> bool:
        return self.push_state is PushState.PENDING

    @property
    def identity_key(self) -> ServiceKey:
        """Key used to recognise the same entry across re-stacking."""
        return (self.verb_code, self.noun_code, self.timestamp, self.note)

    def mark_pushed(self) -> None:
        self.push_state = PushState.PUSHED
        self.last_error = None
        self.needs_review = False

    def record_failure(self, error: str, *, needs_review: bool = False) -> None:
        """Count a failed push attempt; the service stays Pending."""
        self.push_attempts += 1
        self.last_error = error
        if needs_review:
            self.needs_review = True


def validate_work_order_id(value: str) -> str:
    """Return the trimmed work order id, or raise ValueError if not 7 digits."""
    value = str(value).strip()
    if not WORK_ORDER_ID_RE.match(value):
        raise ValueError(f"Work order id must be exactly 7 digits, got {value!r}")
    return value


class WorkOrderBatch(BaseModel):
    """All encoded services for one work order.

    Rebuilt from the notes each time the work order is stacked.
    """

    model_config = ConfigDict(validate_assignment=True)

    work_order_id: str
    control_number: str | None = None
    services: list[EncodedService] = Field(default_factory=list)

    @field_validator("work_order_id", mode="before")
    @classmethod
    def _check_work_order_id(cls, v: str) -> str:
        return validate_work_order_id(v)

    @field_validator("control_number", mode="before")
    @classmethod
    def _check_control_number(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        v = str(v).strip()
        if not CONTROL_NUMBER_RE.match(v):
            raise ValueError(f"Control number must be exactly 8 digits, got {v!r}")
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def combined_note(self) -> str:
        """Each service's timestamp line followed by its note, blank-line separated."""
        return "\n\n".join(
            f"{service.timestamp.strftime(TIMESTAMP_FORMAT)}\n{service.note}"
            for service in self.services
        )

    @property
    def pending_services(self) -> list[EncodedService]:
        return [service for service in self.services if service.is_pending]

    @property
    def is_fully_pushed(self) -> bool:
        return not self.pending_services

    def merge_push_state(self, previous: WorkOrderBatch | None) -> int:
        """Carry push state over from the batch this one replaces.

        Services whose identity key was already Pushed stay Pushed; review
        flags and attempt counters of still-pending services carry over too.
        Services absent from ``previous`` start Pending.

        Returns:
            Number of services that kept a Pushed state
        """
        if previous is None:
            return 0
        if self.control_number is None:
            self.control_number = previous.control_number

        prior: dict[ServiceKey, list[EncodedService]] = {}
        for service in previous.services:
            prior.setdefault(service.identity_key, []).append(service)

        carried = 0
        for service in self.services:
            matches = prior.get(service.identity_key)
            if not matches:
                continue
            old = matches.pop(0)
            service.push_state = old.push_state
            service.push_attempts = old.push_attempts
            service.last_error = old.last_error
            service.needs_review = old.needs_review
            if old.push_state is PushState.PUSHED:
                carried += 1
        return carried
