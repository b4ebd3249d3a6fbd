"""Publish outcome: one per publish attempt, consumed by the router, never persisted."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PublishStatus(str, Enum):
    ACKNOWLEDGED = "ACKNOWLEDGED"
    REJECTED = "REJECTED"
    # Delivery status unknown: the message may have reached the queue.
    TIMED_OUT = "TIMED_OUT"
    CONNECTION_UNAVAILABLE = "CONNECTION_UNAVAILABLE"


@dataclass(frozen=True)
class PublishOutcome:
    status: PublishStatus
    message_id: str | None = None
    reason: str | None = None

    @property
    def acknowledged(self) -> bool:
        return self.status == PublishStatus.ACKNOWLEDGED

    @classmethod
    def acknowledged_for(cls, message_id: str | None) -> PublishOutcome:
        return cls(PublishStatus.ACKNOWLEDGED, message_id=message_id)

    @classmethod
    def rejected(cls, message_id: str | None, reason: str) -> PublishOutcome:
        return cls(PublishStatus.REJECTED, message_id=message_id, reason=reason)

    @classmethod
    def timed_out(cls, message_id: str | None) -> PublishOutcome:
        return cls(PublishStatus.TIMED_OUT, message_id=message_id, reason="confirm_timeout")

    @classmethod
    def connection_unavailable(cls, message_id: str | None, reason: str) -> PublishOutcome:
        return cls(PublishStatus.CONNECTION_UNAVAILABLE, message_id=message_id, reason=reason)
