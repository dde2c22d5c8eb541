"""
Test Configuration and Fixtures

- Environment is set before any application module is imported, so the
  module-level `settings` picks up the in-memory document store
- Unit tests run against InMemoryDocumentStore, no PostgreSQL or Redis needed
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    os.environ['DOCUMENT_STORE_BACKEND'] = 'memory'
    os.environ.setdefault('SECRET_KEY', 'test_secret_key')
    os.environ.setdefault('PENDING_SYNC_ENABLED', 'false')

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)


_early_setup_test_environment()

import pytest  # noqa: E402

from src.platform.cache.ttl_cache import TtlCache  # noqa: E402
from src.platform.document_store.in_memory_document_store import (  # noqa: E402
    InMemoryDocumentStore,
)
from src.platform.document_store.transaction_runner import TransactionRunner  # noqa: E402
from src.service.booking.driven_adapter.identity.context_identity_provider import (  # noqa: E402
    ContextIdentityProvider,
)
from src.service.booking.driven_adapter.pending_sync.file_pending_sync_store_impl import (  # noqa: E402
    FilePendingSyncStoreImpl,
)


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def transaction_runner(document_store: InMemoryDocumentStore) -> TransactionRunner:
    return TransactionRunner(
        store=document_store,
        max_attempts=5,
        backoff_base_seconds=0.0,
        backoff_max_seconds=0.0,
    )


@pytest.fixture
def user_bookings_cache() -> TtlCache:
    return TtlCache(ttl_seconds=300)


@pytest.fixture
def identity_provider() -> ContextIdentityProvider:
    return ContextIdentityProvider()


@pytest.fixture
def pending_sync_store(tmp_path: Path) -> FilePendingSyncStoreImpl:
    return FilePendingSyncStoreImpl(directory=tmp_path / 'pending_sync')
