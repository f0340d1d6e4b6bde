"""Config sub-models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Retry policy for remote interactions.

    Remote calls share one UI session, so the delay is fixed and short.
    """

    max_attempts: int = Field(default=3, ge=1, le=10)
    delay_seconds: float = Field(default=1.0, ge=0.0, le=30.0)


__all__ = ["RetryConfig"]
