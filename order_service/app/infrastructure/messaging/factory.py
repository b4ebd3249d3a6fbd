"""Publisher factory: selects implementation from config."""
from __future__ import annotations

from order_service.app.config.settings import Settings
from order_service.app.ports.message_publisher import MessagePublisher
from order_service.app.infrastructure.messaging.inmemory.in_memory_publisher import InMemoryPublisher
from order_service.app.infrastructure.messaging.rabbitmq.connection_manager import RabbitMQConnectionManager
from order_service.app.infrastructure.messaging.rabbitmq.rabbitmq_publisher import RabbitMQPublisher


def create_publisher(settings: Settings) -> MessagePublisher:
    backend = settings.publisher_backend.strip().lower()

    if backend == "rabbitmq":
        return RabbitMQPublisher(settings, RabbitMQConnectionManager(settings))

    if backend == "inmemory":
        return InMemoryPublisher()

    raise ValueError(f"Unsupported publisher backend: {backend}")
