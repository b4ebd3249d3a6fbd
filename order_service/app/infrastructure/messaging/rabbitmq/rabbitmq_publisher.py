"""
RabbitMQ publisher: one confirmed message per order.

Each publish acquires the shared session, then runs declare queue -> publish -> wait for
confirm as a single unit under _lock, so concurrent publishers never interleave on the
shared channel. Every broker round trip is bounded by a configured timeout.
Every way this can go wrong is returned as a PublishOutcome; only SerializationError
(raised before anything touches the broker) escapes to the caller.
"""
from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from aio_pika import DeliveryMode, Message
from aio_pika.abc import AbstractChannel
from aiormq.exceptions import (
    ChannelAccessRefused,
    ChannelNotFoundEntity,
    ChannelPreconditionFailed,
    DeliveryError,
)
from loguru import logger
from pamqp.commands import Basic

from order_service.app.config.settings import Settings
from order_service.app.core import SERVICE_NAME
from order_service.app.domain.errors import ConnectionUnavailable
from order_service.app.domain.outcomes import PublishOutcome, PublishStatus
from order_service.app.domain.serialization import CONTENT_TYPE, encode_payload
from order_service.app.infrastructure.messaging.rabbitmq.constants import ConnectionState
from order_service.app.ports.broker_connection import BrokerConnection


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def _warn(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).warning("")


def _describe(exc: BaseException) -> str:
    # str() on some aiormq errors formats from fields that may be unset.
    return " ".join(str(arg) for arg in exc.args if arg not in (None, "")) or type(exc).__name__


class RabbitMQPublisher:
    """MessagePublisher implementation over a BrokerConnection."""

    def __init__(self, settings: Settings, connections: BrokerConnection) -> None:
        self._settings = settings
        self._connections = connections
        self._lock = asyncio.Lock()
        self._declared_on: AbstractChannel | None = None

    @property
    def connections(self) -> BrokerConnection:
        return self._connections

    @property
    def ready(self) -> bool:
        return self._connections.state == ConnectionState.CONNECTED

    @property
    def state(self) -> str:
        return self._connections.state.value

    async def connect(self) -> None:
        await self._connections.start()

    @asynccontextmanager
    async def _session_turn(self) -> AsyncIterator[None]:
        try:
            await asyncio.wait_for(
                self._lock.acquire(),
                timeout=self._settings.session_wait_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ConnectionUnavailable("publisher_busy") from None
        try:
            yield
        finally:
            self._lock.release()

    def _queue_arguments(self) -> dict[str, Any] | None:
        if self._settings.queue_max_length <= 0:
            return None
        return {
            "x-max-length": self._settings.queue_max_length,
            "x-overflow": "reject-publish",
        }

    async def _declare_queue(self, channel: AbstractChannel) -> None:
        # Declaring an existing queue with identical properties is a no-op on the broker;
        # it is skipped on a channel that already declared it until a return says otherwise.
        if channel is self._declared_on:
            return
        await channel.declare_queue(
            self._settings.queue_name,
            durable=self._settings.queue_durable,
            arguments=self._queue_arguments(),
            timeout=self._settings.publish_confirm_timeout_seconds,
        )
        self._declared_on = channel
        _log("queue_declared", queue=self._settings.queue_name, durable=self._settings.queue_durable)

    def _build_message(self, body: bytes, message_id: str) -> Message:
        return Message(
            body,
            content_type=CONTENT_TYPE,
            content_encoding="utf-8",
            delivery_mode=DeliveryMode.PERSISTENT if self._settings.queue_durable else DeliveryMode.NOT_PERSISTENT,
            message_id=message_id,
            timestamp=datetime.now(tz=timezone.utc),
        )

    async def _publish_once(self, channel: AbstractChannel, body: bytes, message_id: str) -> PublishOutcome:
        if channel.is_closed:
            # Session was lost while waiting for our turn.
            return PublishOutcome.connection_unavailable(message_id, "connection_lost")
        try:
            await self._declare_queue(channel)
        except asyncio.TimeoutError:
            # Nothing was sent yet, so retrying is safe.
            self._connections.mark_failed("declare_timeout", channel)
            return PublishOutcome.connection_unavailable(message_id, "declare_timeout")
        except (ChannelPreconditionFailed, ChannelNotFoundEntity, ChannelAccessRefused) as e:
            self._connections.mark_failed(f"channel_error: {_describe(e)}", channel)
            return PublishOutcome.rejected(message_id, _describe(e))
        except Exception as e:
            logger.warning("queue declare transport failure: {}", _describe(e))
            self._connections.mark_failed(f"declare_failed: {_describe(e)}", channel)
            return PublishOutcome.connection_unavailable(message_id, "connection_lost")

        try:
            confirmation = await channel.default_exchange.publish(
                self._build_message(body, message_id),
                routing_key=self._settings.queue_name,
                timeout=self._settings.publish_confirm_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return PublishOutcome.timed_out(message_id)
        except DeliveryError as e:
            # Returned as unroutable: the queue may be gone, so declare again next time.
            self._declared_on = None
            frame = getattr(e, "frame", None)
            reason = getattr(frame, "reply_text", None) or type(e).__name__
            return PublishOutcome.rejected(message_id, f"message_returned: {reason}")
        except (ChannelPreconditionFailed, ChannelNotFoundEntity, ChannelAccessRefused) as e:
            # The broker closes the channel after these; a fresh session is needed.
            self._connections.mark_failed(f"channel_error: {_describe(e)}", channel)
            return PublishOutcome.rejected(message_id, _describe(e))
        except Exception as e:
            logger.warning("publish transport failure: {}", _describe(e))
            self._connections.mark_failed(f"publish_failed: {_describe(e)}", channel)
            return PublishOutcome.connection_unavailable(message_id, "connection_lost")
        if isinstance(confirmation, Basic.Nack):
            return PublishOutcome.rejected(message_id, "queue_rejected")
        return PublishOutcome.acknowledged_for(message_id)

    async def publish(self, payload: Any, *, message_id: str | None = None) -> PublishOutcome:
        body = encode_payload(payload)
        message_id = message_id or uuid.uuid4().hex
        start = time.perf_counter()
        try:
            # Acquired before queueing for the lock: concurrent callers share one bounded
            # connect attempt instead of each running their own in turn.
            channel = await self._connections.acquire_session()
            async with self._session_turn():
                outcome = await self._publish_once(channel, body, message_id)
        except ConnectionUnavailable as e:
            outcome = PublishOutcome.connection_unavailable(message_id, str(e))
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        if outcome.status == PublishStatus.ACKNOWLEDGED:
            _log("publish_success", message_id=message_id, latency_ms=latency_ms)
        else:
            _warn(
                "publish_failed",
                message_id=message_id,
                outcome=outcome.status.value,
                reason=outcome.reason,
                latency_ms=latency_ms,
            )
        return outcome

    async def close(self) -> None:
        _log("publisher_shutdown")
        # Let the in-flight unit of work finish before the session goes away.
        try:
            async with self._session_turn():
                pass
        except ConnectionUnavailable:
            logger.warning("publisher close: in-flight publish still running, closing anyway")
        await self._connections.close()
