from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request, Response

from order_service.app.routers.utils import publish_or_error

orders_router = APIRouter(prefix="/orders", tags=["Orders"])


@orders_router.post(
    "",
    summary="Submit an order",
    description="Publishes the order body to the order queue and waits for the broker to confirm it. No schema is enforced on the order.",
    responses={
        202: {"description": "Order confirmed by the broker."},
        400: {"description": "Order cannot be encoded as JSON (e.g. NaN or Infinity values)."},
        422: {"description": "Body is not a JSON object."},
        502: {"description": "Broker rejected the order, or did not confirm it in time (delivery unknown; retrying may duplicate)."},
        503: {"description": "Broker unavailable; safe to retry later."},
    },
)
async def post_order(request: Request, order: dict[str, Any] = Body(...)) -> Response:
    return await publish_or_error(request, payload=order)
