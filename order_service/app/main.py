"""
FastAPI application entry point: order ingestion service.

POST /orders publishes each order to the order queue with publisher confirms.
Run with `python -m order_service.app.main` or `uvicorn order_service.app.main:app`.
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from order_service.app.composition import create_app_dependencies
from order_service.app.config.settings import Settings
from order_service.app.core import SERVICE_NAME
from order_service.app.routers.health import health_router
from order_service.app.routers.orders import orders_router


def create_app(settings: Settings | None = None) -> FastAPI:
    _settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.bind(service_name=SERVICE_NAME, event="api_starting").info("")
        deps = create_app_dependencies(_settings)
        await deps.connect()
        app.state.settings = deps.settings
        app.state.publisher = deps.publisher
        app.state.order_submissions = deps.order_submissions
        try:
            yield
        finally:
            logger.bind(service_name=SERVICE_NAME, event="api_stopping").info("")
            await deps.close()

    app = FastAPI(
        title="Order Service",
        description="Accepts orders over HTTP and publishes them to RabbitMQ.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health_router)
    app.include_router(orders_router)
    return app


app = create_app()


def main() -> None:
    settings = Settings()
    logger.bind(service_name=SERVICE_NAME, event="order_service_listening", port=settings.port).info("")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
