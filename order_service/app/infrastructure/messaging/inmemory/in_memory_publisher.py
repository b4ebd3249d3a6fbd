"""In-memory publisher for local mode and tests.
Encodes payloads exactly like the broker publisher and always acknowledges.
Nothing consumes these messages; they live until the process exits.
"""
from __future__ import annotations

import uuid
from typing import Any

from order_service.app.domain.outcomes import PublishOutcome
from order_service.app.domain.serialization import encode_payload
from order_service.app.infrastructure.messaging.rabbitmq.constants import ConnectionState


class InMemoryPublisher:
    def __init__(self) -> None:
        self.messages: list[bytes] = []
        self.message_ids: list[str] = []

    async def connect(self) -> None:
        return

    @property
    def ready(self) -> bool:
        return True

    @property
    def state(self) -> str:
        return ConnectionState.CONNECTED.value

    async def publish(self, payload: Any, *, message_id: str | None = None) -> PublishOutcome:
        body = encode_payload(payload)
        message_id = message_id or uuid.uuid4().hex
        self.messages.append(body)
        self.message_ids.append(message_id)
        return PublishOutcome.acknowledged_for(message_id)

    async def close(self) -> None:
        return
