"""
Accepts a plain payload and publishes it through a MessagePublisher; returns the outcome.
Router translates the outcome to an HTTP status.

The publish runs as its own task and the caller awaits it through asyncio.shield: if the
request is cancelled (client disconnect) the publish still completes or times out on its
own schedule instead of being torn down halfway through a broker round trip.
In-flight tasks belong to the OrderSubmissions instance, so each app drains only its own.
"""
import asyncio
import uuid
from typing import Any

from loguru import logger

from order_service.app.core import SERVICE_NAME
from order_service.app.domain.errors import SerializationError
from order_service.app.domain.outcomes import PublishOutcome
from order_service.app.ports.message_publisher import MessagePublisher


class OrderSubmissions:
    """Submits orders to one publisher and tracks publishes that outlive their request."""

    def __init__(self, publisher: MessagePublisher) -> None:
        self._publisher = publisher
        self._in_flight: set[asyncio.Task[PublishOutcome]] = set()

    @property
    def publisher(self) -> MessagePublisher:
        return self._publisher

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def _forget(self, task: asyncio.Task[PublishOutcome]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, SerializationError):
            logger.opt(exception=exc).warning("detached publish failed: {}", exc)
        elif exc is None:
            outcome = task.result()
            logger.bind(
                service_name=SERVICE_NAME,
                event="publish_settled",
                message_id=outcome.message_id,
                outcome=outcome.status.value,
            ).debug("")

    async def submit(self, payload: dict[str, Any]) -> PublishOutcome:
        """
        Publish one order. Raises SerializationError when the payload cannot be encoded;
        every broker-side result comes back as a PublishOutcome.
        """
        message_id = str(uuid.uuid4())
        task = asyncio.ensure_future(self._publisher.publish(payload, message_id=message_id))
        self._in_flight.add(task)
        task.add_done_callback(self._forget)
        return await asyncio.shield(task)

    async def drain(self, timeout: float) -> None:
        """Wait (bounded) for publishes whose requests are gone. Used at shutdown."""
        if not self._in_flight:
            return
        _, pending = await asyncio.wait(set(self._in_flight), timeout=timeout)
        if pending:
            logger.warning("{} publish(es) still in flight at shutdown", len(pending))
