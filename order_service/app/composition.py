"""
Composition root: single place where concrete implementations are wired.

Builds settings and the publisher (and, for the rabbitmq backend, its connection
manager) from config and owns their connect/close lifecycle. Used by the FastAPI
lifespan to populate app.state. Explicit wiring only.
"""

from order_service.app.config.settings import Settings
from order_service.app.infrastructure.messaging.factory import create_publisher
from order_service.app.ports.message_publisher import MessagePublisher
from order_service.app.services.submit_order import OrderSubmissions


class AppDependencies:
    """Holds wired dependencies and their lifecycle. Built only in composition root."""

    def __init__(self, *, settings: Settings, publisher: MessagePublisher) -> None:
        self._settings = settings
        self._publisher = publisher
        self._order_submissions = OrderSubmissions(publisher)
        self._publisher_connected = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def publisher(self) -> MessagePublisher:
        return self._publisher

    @property
    def order_submissions(self) -> OrderSubmissions:
        return self._order_submissions

    async def connect(self) -> None:
        # A broker that is down at boot degrades readiness; it does not stop the service.
        await self._publisher.connect()
        self._publisher_connected = True

    async def close(self) -> None:
        if not self._publisher_connected:
            return
        await self._order_submissions.drain(
            self._settings.publish_confirm_timeout_seconds + self._settings.connect_timeout_seconds,
        )
        await self._publisher.close()
        self._publisher_connected = False


def create_app_dependencies(settings: Settings | None = None) -> AppDependencies:
    """
    Build all app dependencies in one place. Caller owns lifecycle (connect/close).
    The publisher backend is selected from settings.publisher_backend.
    """
    _settings = settings or Settings()
    return AppDependencies(settings=_settings, publisher=create_publisher(_settings))
