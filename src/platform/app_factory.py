"""
FastAPI app factory shared by the service entry point and the test app.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.platform.config.core_setting import settings
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.observability.tracing import TracingConfig
from src.service.booking.driving_adapter.http_controller.booking_controller import (
    router as booking_router,
)


# (router, prefix, tag)
ROUTERS: list[tuple[APIRouter, str, str]] = [
    (booking_router, '/api/booking', 'booking'),
]


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
    service_name: str = 'trip-booking',
) -> FastAPI:
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description='Booking commit coordinator for trips, flights, hotels and cars',
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # FastAPI instrumentation has to wrap the app before routes are mounted
    TracingConfig(service_name=service_name).instrument_fastapi(app=app)

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,  # type: ignore
            allow_origins=settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=['GET', 'POST', 'PATCH', 'PUT'],
            allow_headers=['Authorization', 'Content-Type'],
        )

    register_exception_handlers(app)

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    @app.get('/health')
    async def health_check() -> dict[str, str]:
        return {
            'status': 'healthy',
            'service': settings.PROJECT_NAME,
            'document_store': settings.DOCUMENT_STORE_BACKEND,
        }

    return app
