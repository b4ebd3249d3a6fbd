"""Port: order publish contract. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Any, Protocol

from order_service.app.domain.outcomes import PublishOutcome


class MessagePublisher(Protocol):
    """Publishes one payload per call and reports what happened to it."""

    async def connect(self) -> None: ...

    async def publish(self, payload: Any, *, message_id: str | None = None) -> PublishOutcome:
        """Raises SerializationError for unencodable payloads; every other failure is an outcome."""
        ...

    async def close(self) -> None: ...

    @property
    def ready(self) -> bool: ...

    @property
    def state(self) -> str:
        """Broker connection state name, reported by the readiness endpoint."""
        ...
