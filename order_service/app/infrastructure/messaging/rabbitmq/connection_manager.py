"""
RabbitMQ connection manager: one long-lived connection with one channel on it.

Lifecycle:
  DISCONNECTED -> CONNECTING -> CONNECTED.
  On broker disconnect, channel close, or a transport error reported through mark_failed():
  CONNECTED -> FAILED -> (backoff) -> CONNECTING -> CONNECTED.
  On shutdown: any -> CLOSED.

Concurrency:
  - _connect_lock admits one connect attempt at a time. acquire_session() gives up after
    connect_timeout_seconds, so request handlers never hold up the reconnect task.
  - At most one reconnect task exists at a time; it runs on its own schedule, not a request's.
  - Close callbacks from a connection or channel that is no longer current are ignored.
"""
from __future__ import annotations

import asyncio
from typing import Any

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractConnection
from loguru import logger

from order_service.app.config.settings import Settings
from order_service.app.core import SERVICE_NAME
from order_service.app.core.backoff import exponential_backoff
from order_service.app.domain.errors import ConnectionUnavailable
from order_service.app.infrastructure.messaging.rabbitmq.constants import ConnectionState


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class RabbitMQConnectionManager:
    """BrokerConnection implementation. Sole owner and writer of the connection state."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._state = ConnectionState.DISCONNECTED
        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None
        self._connect_lock = asyncio.Lock()
        self._reconnect_task: asyncio.Task[None] | None = None
        self._closing = False
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def _set_state(self, state: ConnectionState, **context: Any) -> None:
        if state == self._state:
            return
        previous = self._state
        self._state = state
        _log("connection_state_changed", previous=previous.value, state=state.value, **context)

    def _session_open(self) -> bool:
        return (
            self._state == ConnectionState.CONNECTED
            and self._channel is not None
            and not self._channel.is_closed
        )

    def _register_close_callbacks(self, *resources: Any) -> None:
        for resource in resources:
            callbacks = getattr(resource, "close_callbacks", None)
            if callbacks is not None:
                callbacks.add(self._on_closed)

    def _on_closed(self, sender: Any, exc: BaseException | None = None, *args: Any) -> None:
        if self._closing:
            return
        if sender is None or (sender is not self._connection and sender is not self._channel):
            return
        _log("broker_disconnect_detected", reason=str(exc) if exc else None)
        self.mark_failed(str(exc) if exc else "closed_by_broker")

    def mark_failed(self, reason: str, channel: AbstractChannel | None = None) -> None:
        """
        Drop the current session and schedule a background reconnect.
        When `channel` is given and is no longer the current one, the report is stale and ignored.
        """
        if self._closing:
            return
        if channel is not None and channel is not self._channel:
            return
        self._set_state(ConnectionState.FAILED, reason=reason)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._schedule_reconnect)
            return
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closing:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def start(self) -> None:
        """One bounded connect attempt. Failure leaves a reconnect task running; never raises."""
        self._loop = asyncio.get_running_loop()
        try:
            await self.acquire_session()
        except ConnectionUnavailable as e:
            _log("rmq_initial_connect_failed", reason=str(e))

    async def acquire_session(self) -> AbstractChannel:
        if self._closing:
            raise ConnectionUnavailable("connection_manager_closed")
        channel = self._channel
        if self._session_open() and channel is not None:
            return channel
        try:
            return await asyncio.wait_for(
                self._establish(),
                timeout=self._settings.connect_timeout_seconds,
            )
        except ConnectionUnavailable:
            raise
        except asyncio.TimeoutError:
            reason = "connect_timeout"
        except Exception as e:
            logger.warning("rmq connect failed: {}", e)
            reason = f"connect_failed: {e}"
        self._schedule_reconnect()
        raise ConnectionUnavailable(reason)

    async def _establish(self) -> AbstractChannel:
        async with self._connect_lock:
            if self._closing:
                raise ConnectionUnavailable("connection_manager_closed")
            channel = self._channel
            if self._session_open() and channel is not None:
                return channel
            await self._discard_session()
            self._set_state(ConnectionState.CONNECTING)
            connection: AbstractConnection | None = None
            try:
                connection = await aio_pika.connect(
                    self._settings.rabbitmq_connection_string,
                    timeout=self._settings.connect_timeout_seconds,
                )
                channel = await connection.channel(
                    publisher_confirms=self._settings.publisher_confirms,
                )
            except (Exception, asyncio.CancelledError):
                self._set_state(ConnectionState.FAILED, reason="connect_attempt_failed")
                if connection is not None:
                    await asyncio.shield(self._close_quietly(connection))
                raise
            self._connection = connection
            self._channel = channel
            self._register_close_callbacks(connection, channel)
            self._set_state(ConnectionState.CONNECTED)
            return channel

    async def _reconnect_loop(self) -> None:
        attempt = 0
        async for delay in exponential_backoff(
            self._settings.initial_backoff_seconds,
            self._settings.max_backoff_seconds,
            self._settings.backoff_multiplier,
            self._settings.max_reconnect_attempts or None,
            jitter=self._settings.backoff_jitter,
        ):
            if self._closing:
                return
            if self._session_open():
                _log("rmq_reconnected", attempt=attempt)
                return
            attempt += 1
            _log("rmq_reconnect_attempt", attempt=attempt, delay=round(delay, 3))
            try:
                await asyncio.wait_for(
                    self._establish(),
                    timeout=self._settings.connect_timeout_seconds,
                )
            except Exception as e:
                logger.warning("rmq reconnect attempt {} failed: {}", attempt, e)
                continue
            _log("rmq_reconnected", attempt=attempt)
            return
        _log("rmq_reconnect_exhausted", max_attempts=self._settings.max_reconnect_attempts)

    async def _close_quietly(self, resource: Any) -> None:
        if getattr(resource, "is_closed", False):
            return
        try:
            await resource.close()
        except Exception as e:
            logger.warning("rmq close failed: {}", e)

    async def _discard_session(self) -> None:
        # Detach first so close callbacks from these objects are ignored.
        channel, connection = self._channel, self._connection
        self._channel = None
        self._connection = None
        if channel is not None:
            await self._close_quietly(channel)
        if connection is not None:
            await self._close_quietly(connection)

    async def close(self) -> None:
        self._closing = True
        _log("connection_manager_shutdown")
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        async with self._connect_lock:
            await self._discard_session()
        self._set_state(ConnectionState.CLOSED)
