import pytest

from src.platform.cache.ttl_cache import TtlCache
from src.platform.document_store.transaction_runner import TransactionRunner
from src.service.booking.app.command.create_booking_use_case import CreateBookingUseCase
from src.service.booking.app.command.update_booking_status_use_case import (
    UpdateBookingStatusUseCase,
)
from src.service.booking.app.query.list_user_bookings_use_case import ListUserBookingsUseCase
from src.service.booking.driven_adapter.identity.context_identity_provider import (
    ContextIdentityProvider,
)
from src.service.booking.driven_adapter.pending_sync.file_pending_sync_store_impl import (
    FilePendingSyncStoreImpl,
)


@pytest.fixture
def create_booking_use_case(
    transaction_runner: TransactionRunner,
    identity_provider: ContextIdentityProvider,
    user_bookings_cache: TtlCache,
    pending_sync_store: FilePendingSyncStoreImpl,
) -> CreateBookingUseCase:
    return CreateBookingUseCase(
        transaction_runner=transaction_runner,
        identity_provider=identity_provider,
        user_bookings_cache=user_bookings_cache,
        pending_sync_store=pending_sync_store,
        id_prefix='HR',
        pending_sync_enabled=False,
    )


@pytest.fixture
def update_booking_status_use_case(
    transaction_runner: TransactionRunner, user_bookings_cache: TtlCache
) -> UpdateBookingStatusUseCase:
    return UpdateBookingStatusUseCase(
        transaction_runner=transaction_runner, user_bookings_cache=user_bookings_cache
    )


@pytest.fixture
def list_user_bookings_use_case(document_store, user_bookings_cache) -> ListUserBookingsUseCase:
    return ListUserBookingsUseCase(
        document_store=document_store, user_bookings_cache=user_bookings_cache, page_size=50
    )
