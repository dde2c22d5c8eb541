"""
Trip Booking Service - Main Application
Booking commit, status changes, trip index and analytics over the document store.
"""

from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.database.asyncpg_setting import close_all_asyncpg_pools
from src.platform.database.document_table import create_document_tables
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.platform.state.redis_client import redis_client
from src.service.booking.app.command.initialize_analytics_use_case import (
    InitializeAnalyticsUseCase,
)
from src.service.booking.app.command.reconcile_pending_bookings_use_case import (
    ReconcilePendingBookingsUseCase,
)
from src.service.booking.driving_adapter.worker.pending_sync_reconciler import (
    PendingSyncReconciler,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Manage application lifespan: startup and shutdown"""
    Logger.base.info('🚀 [Booking Service] Starting up...')

    tracing = TracingConfig(service_name='trip-booking')
    tracing.setup()

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Booking Service] Dependency injection wired')

    use_postgres = settings.DOCUMENT_STORE_BACKEND == 'postgres'
    if use_postgres:
        tracing.instrument_asyncpg()
        tracing.instrument_redis()
        await redis_client.initialize()
        Logger.base.info('📡 [Booking Service] Redis initialized')
        await create_document_tables()
    else:
        Logger.base.warning('⚠️ [Booking Service] Using in-memory document store')

    transaction_runner = container.transaction_runner()
    await InitializeAnalyticsUseCase(transaction_runner=transaction_runner).execute()

    async with anyio.create_task_group() as background:
        if settings.PENDING_SYNC_ENABLED:
            reconciler = PendingSyncReconciler(
                use_case=ReconcilePendingBookingsUseCase(
                    transaction_runner=transaction_runner,
                    pending_sync_store=container.pending_sync_store(),
                    user_bookings_cache=container.user_bookings_cache(),
                    max_replay_attempts=settings.PENDING_SYNC_MAX_REPLAY_ATTEMPTS,
                ),
                interval_seconds=settings.PENDING_SYNC_RECONCILE_INTERVAL_SECONDS,
            )
            background.start_soon(reconciler.run_forever)

        Logger.base.info('✅ [Booking Service] Startup complete')

        yield

        Logger.base.info('🛑 [Booking Service] Shutting down...')
        background.cancel_scope.cancel()

    if use_postgres:
        await close_all_asyncpg_pools()
        await redis_client.disconnect()

    tracing.shutdown()
    container.unwire()
    Logger.base.info('👋 [Booking Service] Shutdown complete')


app = create_app(lifespan=lifespan)
