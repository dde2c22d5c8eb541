"""
Unit tests for ReconcilePendingBookingsUseCase

Focus:
1. Held bookings are replayed through the same atomic write
2. Replaying a booking that already exists writes nothing (no double increments)
3. Replays that keep failing end in FAILED after max attempts
"""

from unittest.mock import AsyncMock

import pytest

from src.platform.exception.exceptions import TransactionConflictError
from src.service.booking.app.command.create_booking_use_case import CreateBookingUseCase
from src.service.booking.app.command.reconcile_pending_bookings_use_case import (
    ReconcilePendingBookingsUseCase,
    ReconcileReport,
)
from src.service.booking.domain.enum.sync_state import SyncState
from src.service.booking.domain.value_object.document_path import (
    ANALYTICS_PATH,
    booking_path,
    user_trip_path,
)
from test.service.booking.helpers import make_draft


@pytest.fixture
def degraded_create_use_case(
    transaction_runner, identity_provider, user_bookings_cache, pending_sync_store
) -> CreateBookingUseCase:
    return CreateBookingUseCase(
        transaction_runner=transaction_runner,
        identity_provider=identity_provider,
        user_bookings_cache=user_bookings_cache,
        pending_sync_store=pending_sync_store,
        pending_sync_enabled=True,
    )


@pytest.fixture
def reconcile_use_case(
    transaction_runner, pending_sync_store, user_bookings_cache
) -> ReconcilePendingBookingsUseCase:
    return ReconcilePendingBookingsUseCase(
        transaction_runner=transaction_runner,
        pending_sync_store=pending_sync_store,
        user_bookings_cache=user_bookings_cache,
        max_replay_attempts=2,
    )


async def _hold_booking(use_case, document_store, identity_provider, amount: int = 800) -> str:
    original = document_store._commit_transaction
    document_store._commit_transaction = AsyncMock(side_effect=TransactionConflictError())
    try:
        with identity_provider.bound('user-u'):
            result = await use_case.execute(draft=make_draft(amount=amount))
    finally:
        document_store._commit_transaction = original
    assert result.sync_state == SyncState.PENDING_SYNC
    return result.booking_id


@pytest.mark.unit
class TestReconcilePendingBookings:
    @pytest.mark.asyncio
    async def test_held_booking_is_committed(
        self, degraded_create_use_case, reconcile_use_case, document_store, pending_sync_store,
        identity_provider,
    ):
        booking_id = await _hold_booking(degraded_create_use_case, document_store, identity_provider)

        report = await reconcile_use_case.execute()

        assert report == ReconcileReport(committed=1)
        assert await document_store.get(booking_path(booking_id)) is not None
        assert await document_store.get(user_trip_path('user-u', booking_id)) is not None
        assert (await document_store.get(ANALYTICS_PATH)).data['totalRevenue'] == 800
        assert await pending_sync_store.get(booking_id=booking_id) is None

    @pytest.mark.asyncio
    async def test_replay_is_idempotent(
        self, degraded_create_use_case, reconcile_use_case, document_store, pending_sync_store,
        identity_provider,
    ):
        booking_id = await _hold_booking(degraded_create_use_case, document_store, identity_provider)
        record = await pending_sync_store.get(booking_id=booking_id)

        await reconcile_use_case.execute()
        # Crash between commit and record deletion leaves the record behind
        await pending_sync_store.save(record=record)
        report = await reconcile_use_case.execute()

        assert report == ReconcileReport(already_present=1)
        analytics = (await document_store.get(ANALYTICS_PATH)).data
        assert analytics['totalBookings'] == 1
        assert analytics['totalRevenue'] == 800
        assert await pending_sync_store.get(booking_id=booking_id) is None

    @pytest.mark.asyncio
    async def test_repeated_failures_mark_record_failed(
        self, degraded_create_use_case, reconcile_use_case, document_store, pending_sync_store,
        identity_provider,
    ):
        booking_id = await _hold_booking(degraded_create_use_case, document_store, identity_provider)
        document_store._commit_transaction = AsyncMock(side_effect=TransactionConflictError())

        first = await reconcile_use_case.execute()
        second = await reconcile_use_case.execute()
        third = await reconcile_use_case.execute()

        assert first == ReconcileReport(retrying=1)
        assert second == ReconcileReport(failed=1)
        assert third == ReconcileReport()
        record = await pending_sync_store.get(booking_id=booking_id)
        assert record.state == SyncState.FAILED
        assert record.attempts == 2
        assert record.last_error

    @pytest.mark.asyncio
    async def test_nothing_pending(self, reconcile_use_case):
        assert await reconcile_use_case.execute() == ReconcileReport()
