"""Errors raised across the publish boundary. Transport exceptions never leave infrastructure."""
from __future__ import annotations


class OrderServiceError(Exception):
    """Base for errors the order service raises on purpose."""


class SerializationError(OrderServiceError):
    """Payload cannot be encoded to the wire format. Caller error; never retried."""


class ConnectionUnavailable(OrderServiceError):
    """No broker session could be obtained within the configured bound."""
