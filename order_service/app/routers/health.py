from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

from order_service.app.core import SERVICE_NAME

health_router = APIRouter(prefix="/health", tags=["Health"])


def _readiness(status_code: int, status: str, broker: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status, "broker": broker})


@health_router.get(
    "/live",
    summary="Liveness check",
    description="The process is up and serving HTTP; says nothing about the broker.",
)
async def live() -> dict[str, Any]:
    return {"status": "ok"}


@health_router.get(
    "/ready",
    summary="Broker readiness",
    description="Reports the broker connection state. 200 only while CONNECTED; orders sent in any other state get 503.",
    responses={
        200: {"description": "Broker session is open."},
        503: {"description": "No publisher wired, or the broker connection is not CONNECTED."},
    },
)
async def ready(request: Request) -> JSONResponse:
    publisher = getattr(request.app.state, "publisher", None)
    if publisher is None:
        logger.bind(service_name=SERVICE_NAME, event="readiness_unwired").warning("")
        return _readiness(503, "not_ready", "UNWIRED")
    if not publisher.ready:
        logger.bind(service_name=SERVICE_NAME, event="readiness_broker_down", broker=publisher.state).info("")
        return _readiness(503, "not_ready", publisher.state)
    return _readiness(200, "ready", publisher.state)
