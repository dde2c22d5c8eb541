"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from src.platform.cache.ttl_cache import TtlCache
from src.platform.config.core_setting import Settings, settings
from src.platform.constant.path import PENDING_SYNC_DIR
from src.platform.document_store.in_memory_document_store import InMemoryDocumentStore
from src.platform.document_store.postgres_document_store import PostgresDocumentStore
from src.platform.document_store.transaction_runner import TransactionRunner
from src.service.booking.driven_adapter.identity.context_identity_provider import (
    ContextIdentityProvider,
)
from src.service.booking.driven_adapter.pending_sync.file_pending_sync_store_impl import (
    FilePendingSyncStoreImpl,
)
from src.service.booking.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Document store backend chosen by DOCUMENT_STORE_BACKEND
    document_store = providers.Selector(
        lambda: settings.DOCUMENT_STORE_BACKEND,
        postgres=providers.Singleton(PostgresDocumentStore),
        memory=providers.Singleton(InMemoryDocumentStore),
    )

    # Retry loop shared by every booking transaction
    transaction_runner = providers.Singleton(
        TransactionRunner,
        store=document_store,
        max_attempts=settings.BOOKING_COMMIT_MAX_ATTEMPTS,
        backoff_base_seconds=settings.BOOKING_COMMIT_BACKOFF_BASE_SECONDS,
        backoff_max_seconds=settings.BOOKING_COMMIT_BACKOFF_MAX_SECONDS,
    )

    # user-bookings-{uid} → list of bookings
    user_bookings_cache = providers.Singleton(
        TtlCache, ttl_seconds=settings.USER_BOOKINGS_CACHE_TTL_SECONDS
    )

    # Auth
    jwt_auth = providers.Singleton(JwtAuth)
    identity_provider = providers.Singleton(ContextIdentityProvider)

    # Degraded mode holding area
    pending_sync_store = providers.Singleton(FilePendingSyncStoreImpl, directory=PENDING_SYNC_DIR)


container = Container()


def setup() -> None:
    container.config_service()


def cleanup() -> None:
    container.reset_singletons()
