"""Port: broker session provider used by the publisher."""
from __future__ import annotations

from typing import Any, Protocol

from order_service.app.infrastructure.messaging.rabbitmq.constants import ConnectionState


class BrokerConnection(Protocol):
    @property
    def state(self) -> ConnectionState: ...

    async def start(self) -> None: ...

    async def acquire_session(self) -> Any:
        """Return an open channel or raise ConnectionUnavailable."""
        ...

    def mark_failed(self, reason: str, channel: Any | None = None) -> None: ...

    async def close(self) -> None: ...
