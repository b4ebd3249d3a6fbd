from __future__ import annotations

from typing import Any

from fastapi import Request, Response
from loguru import logger

from order_service.app.core import SERVICE_NAME
from order_service.app.domain.errors import SerializationError
from order_service.app.domain.outcomes import PublishOutcome, PublishStatus
from order_service.app.schemas.orders import OrderAcceptedResponse, OrderErrorResponse
from order_service.app.services.submit_order import OrderSubmissions

STATUS_BY_OUTCOME: dict[PublishStatus, int] = {
    PublishStatus.ACKNOWLEDGED: 202,
    PublishStatus.REJECTED: 502,
    PublishStatus.TIMED_OUT: 502,
    PublishStatus.CONNECTION_UNAVAILABLE: 503,
}


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).warning("")


def error_response(status_code: int, error: str, *, reason: str | None = None, message_id: str | None = None) -> Response:
    return Response(
        status_code=status_code,
        media_type="application/json",
        content=OrderErrorResponse(error=error, reason=reason, message_id=message_id).model_dump_json(),
    )


def response_from_outcome(outcome: PublishOutcome) -> Response:
    status_code = STATUS_BY_OUTCOME[outcome.status]
    if outcome.acknowledged:
        return Response(
            status_code=status_code,
            media_type="application/json",
            content=OrderAcceptedResponse(message_id=outcome.message_id or "").model_dump_json(),
        )
    return error_response(
        status_code,
        outcome.status.value.lower(),
        reason=outcome.reason,
        message_id=outcome.message_id,
    )


async def publish_or_error(request: Request, *, payload: dict[str, Any]) -> Response:
    """Publish the order and map the result to exactly one HTTP response."""
    submissions: OrderSubmissions | None = getattr(request.app.state, "order_submissions", None)
    if submissions is None:
        _log("order_rejected", reason="publisher_not_available")
        return error_response(503, "connection_unavailable", reason="publisher_not_available")

    try:
        outcome = await submissions.submit(payload)
    except SerializationError as e:
        _log("order_rejected", reason="serialization_error", detail=str(e))
        return error_response(400, "serialization_error", reason=str(e))

    if not outcome.acknowledged:
        _log("order_not_published", outcome=outcome.status.value, reason=outcome.reason, message_id=outcome.message_id)
    return response_from_outcome(outcome)


__all__ = [
    "STATUS_BY_OUTCOME",
    "error_response",
    "response_from_outcome",
    "publish_or_error",
]
