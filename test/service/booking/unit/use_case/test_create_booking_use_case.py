"""
Unit tests for CreateBookingUseCase

Focus:
1. One commit writes booking, trip index entry and analytics increments together
2. Identity checks fail before anything is written
3. Conflicts are retried a bounded number of times, then CommitFailedError
4. Degraded mode holds the booking locally instead of writing partially
"""

from unittest.mock import AsyncMock

import anyio
import pytest

from src.platform.document_store.field_value import Increment
from src.platform.exception.exceptions import (
    CommitFailedError,
    IdentityMismatchError,
    TransactionConflictError,
    UnauthenticatedError,
)
from src.service.booking.app.command.create_booking_use_case import CreateBookingUseCase
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.booking_type import BookingType
from src.service.booking.domain.enum.sync_state import SyncState
from src.service.booking.domain.value_object.booking_id import is_valid_booking_id
from src.service.booking.domain.value_object.document_path import (
    ANALYTICS_PATH,
    booking_path,
    user_bookings_cache_key,
    user_trip_path,
)
from test.service.booking.helpers import make_draft


@pytest.mark.unit
class TestCreateBooking:
    @pytest.mark.asyncio
    async def test_tour_booking_is_visible_in_user_bookings(
        self, create_booking_use_case, list_user_bookings_use_case, identity_provider
    ):
        with identity_provider.bound('user-u'):
            result = await create_booking_use_case.execute(
                draft=make_draft(booking_type=BookingType.TOUR, amount=25000, participants=2)
            )

        assert result.sync_state == SyncState.COMMITTED
        assert result.booking_id.startswith('HR-BT-')
        assert is_valid_booking_id(result.booking_id)

        bookings = await list_user_bookings_use_case.execute(user_id='user-u')
        assert [b.id for b in bookings] == [result.booking_id]
        assert bookings[0].status == BookingStatus.CONFIRMED
        assert bookings[0].total_amount == 25000

    @pytest.mark.asyncio
    async def test_booking_and_trip_entry_are_written_together(
        self, create_booking_use_case, document_store, identity_provider
    ):
        with identity_provider.bound('user-u'):
            result = await create_booking_use_case.execute(draft=make_draft())

        booking = await document_store.get(booking_path(result.booking_id))
        trip = await document_store.get(user_trip_path('user-u', result.booking_id))

        assert booking is not None and trip is not None
        assert trip.data['status'] == booking.data['status']
        assert trip.data['totalAmount'] == booking.data['paymentInfo']['amount']
        assert trip.data['title'] == booking.data['item']['title']
        assert booking.data['createdAt'] is not None
        assert booking.data['createdAt'] == trip.data['createdAt']

    @pytest.mark.asyncio
    async def test_analytics_incremented(
        self, create_booking_use_case, document_store, identity_provider
    ):
        with identity_provider.bound('user-u'):
            await create_booking_use_case.execute(
                draft=make_draft(booking_type=BookingType.CURATED, amount=1200)
            )

        analytics = (await document_store.get(ANALYTICS_PATH)).data
        assert analytics['totalRevenue'] == 1200
        assert analytics['totalBookings'] == 1
        assert analytics['bookingsByType']['curated'] == 1
        assert analytics['revenueByType']['curated'] == 1200
        assert analytics['lastUpdated'] is not None

    @pytest.mark.asyncio
    async def test_staged_writes_use_increments_only_for_analytics(
        self, create_booking_use_case, document_store, identity_provider
    ):
        seen = []
        original = document_store._commit_transaction

        async def _spy(read_versions, writes):
            seen.append((read_versions, writes))
            return await original(read_versions, writes)

        document_store._commit_transaction = _spy
        with identity_provider.bound('user-u'):
            await create_booking_use_case.execute(draft=make_draft(amount=10))

        (read_versions, writes), = seen
        assert read_versions == {}
        analytics_write = next(w for w in writes if w.path == ANALYTICS_PATH)
        assert analytics_write.data['totalRevenue'] == Increment(10)
        assert analytics_write.data['totalBookings'] == Increment(1)

    @pytest.mark.asyncio
    async def test_commit_invalidates_owner_cache(
        self, create_booking_use_case, user_bookings_cache, identity_provider
    ):
        user_bookings_cache.set(user_bookings_cache_key('user-u'), [])
        user_bookings_cache.set(user_bookings_cache_key('user-v'), [])

        with identity_provider.bound('user-u'):
            await create_booking_use_case.execute(draft=make_draft())

        assert user_bookings_cache.get(user_bookings_cache_key('user-u')) is None
        assert user_bookings_cache.get(user_bookings_cache_key('user-v')) == []


@pytest.mark.unit
class TestConcurrentBookings:
    @pytest.mark.asyncio
    async def test_two_users_booking_vehicles_concurrently(
        self, create_booking_use_case, document_store, identity_provider
    ):
        async def _book(user_id: str) -> None:
            with identity_provider.bound(user_id):
                await create_booking_use_case.execute(
                    draft=make_draft(booking_type=BookingType.VEHICLE, amount=10000)
                )

        async with anyio.create_task_group() as tg:
            tg.start_soon(_book, 'user-a')
            tg.start_soon(_book, 'user-b')

        analytics = (await document_store.get(ANALYTICS_PATH)).data
        assert analytics['totalRevenue'] == 20000
        assert analytics['totalBookings'] == 2
        assert analytics['bookingsByType']['vehicle'] == 2

    @pytest.mark.asyncio
    async def test_no_lost_increments_under_many_writers(
        self, create_booking_use_case, document_store, identity_provider
    ):
        amounts = [100 * (i + 1) for i in range(25)]

        async def _book(index: int, amount: int) -> None:
            with identity_provider.bound(f'user-{index % 5}'):
                await create_booking_use_case.execute(draft=make_draft(amount=amount))

        async with anyio.create_task_group() as tg:
            for index, amount in enumerate(amounts):
                tg.start_soon(_book, index, amount)

        analytics = (await document_store.get(ANALYTICS_PATH)).data
        assert analytics['totalRevenue'] == sum(amounts)
        assert analytics['totalBookings'] == len(amounts)

        for user_index in range(5):
            bookings = await document_store.query('bookings', where={'userId': f'user-{user_index}'})
            trips = await document_store.query(f'users/user-{user_index}/trips')
            assert {b.id for b in bookings} == {t.id for t in trips}


@pytest.mark.unit
class TestIdentityEnforcement:
    @pytest.mark.asyncio
    async def test_unauthenticated_caller_writes_nothing(
        self, create_booking_use_case, document_store
    ):
        with pytest.raises(UnauthenticatedError):
            await create_booking_use_case.execute(draft=make_draft())

        assert await document_store.query('bookings') == []
        assert await document_store.get(ANALYTICS_PATH) is None

    @pytest.mark.asyncio
    async def test_payload_owner_mismatch_writes_nothing(
        self, create_booking_use_case, document_store, identity_provider
    ):
        with identity_provider.bound('me'):
            with pytest.raises(IdentityMismatchError):
                await create_booking_use_case.execute(draft=make_draft(user_id='other-user'))

        assert await document_store.query('bookings') == []
        assert await document_store.query('users/other-user/trips') == []
        assert await document_store.get(ANALYTICS_PATH) is None

    @pytest.mark.asyncio
    async def test_payload_naming_the_caller_is_accepted(
        self, create_booking_use_case, document_store, identity_provider
    ):
        with identity_provider.bound('me'):
            result = await create_booking_use_case.execute(draft=make_draft(user_id='me'))

        booking = await document_store.get(booking_path(result.booking_id))
        assert booking.data['userId'] == 'me'


@pytest.mark.unit
class TestCommitRetry:
    @pytest.mark.asyncio
    async def test_always_conflicting_commit_gives_up_after_max_attempts(
        self, create_booking_use_case, document_store, identity_provider
    ):
        document_store._commit_transaction = AsyncMock(side_effect=TransactionConflictError())

        with identity_provider.bound('user-u'):
            with pytest.raises(CommitFailedError) as exc_info:
                await create_booking_use_case.execute(draft=make_draft())

        assert document_store._commit_transaction.await_count == 5
        assert exc_info.value.retryable is True
        assert await document_store.query('bookings') == []
        assert await document_store.query('users/user-u/trips') == []
        assert await document_store.get(ANALYTICS_PATH) is None

    @pytest.mark.asyncio
    async def test_conflict_then_success_commits_once(
        self, create_booking_use_case, document_store, identity_provider
    ):
        original = document_store._commit_transaction
        calls = []

        async def _flaky_commit(read_versions, writes):
            calls.append(writes)
            if len(calls) < 3:
                raise TransactionConflictError()
            return await original(read_versions, writes)

        document_store._commit_transaction = _flaky_commit

        with identity_provider.bound('user-u'):
            result = await create_booking_use_case.execute(draft=make_draft(amount=500))

        assert result.sync_state == SyncState.COMMITTED
        assert len(calls) == 3
        analytics = (await document_store.get(ANALYTICS_PATH)).data
        assert analytics['totalBookings'] == 1
        assert analytics['totalRevenue'] == 500


@pytest.mark.unit
class TestDegradedMode:
    @pytest.fixture
    def degraded_use_case(
        self, transaction_runner, identity_provider, user_bookings_cache, pending_sync_store
    ) -> CreateBookingUseCase:
        return CreateBookingUseCase(
            transaction_runner=transaction_runner,
            identity_provider=identity_provider,
            user_bookings_cache=user_bookings_cache,
            pending_sync_store=pending_sync_store,
            pending_sync_enabled=True,
        )

    @pytest.mark.asyncio
    async def test_failed_commit_is_held_for_sync(
        self, degraded_use_case, document_store, pending_sync_store, identity_provider
    ):
        document_store._commit_transaction = AsyncMock(side_effect=TransactionConflictError())

        with identity_provider.bound('user-u'):
            result = await degraded_use_case.execute(draft=make_draft(amount=700))

        assert result.sync_state == SyncState.PENDING_SYNC
        record = await pending_sync_store.get(booking_id=result.booking_id)
        assert record is not None
        assert record.state == SyncState.PENDING_SYNC
        assert record.booking['userId'] == 'user-u'
        assert record.booking['paymentInfo']['amount'] == 700
        assert await document_store.query('bookings') == []

    @pytest.mark.asyncio
    async def test_identity_errors_are_not_held(
        self, degraded_use_case, pending_sync_store, identity_provider
    ):
        with identity_provider.bound('me'):
            with pytest.raises(IdentityMismatchError):
                await degraded_use_case.execute(draft=make_draft(user_id='other-user'))

        assert await pending_sync_store.list_by_state(state=SyncState.PENDING_SYNC) == []
