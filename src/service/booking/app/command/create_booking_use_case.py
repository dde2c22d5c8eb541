"""
Booking Commit Coordinator - create

One transaction writes three documents, all or nothing:
    bookings/{id}               the booking
    users/{uid}/trips/{id}      trip index entry derived from the same booking
    analytics/main              counters, increments only

The transaction performs no reads, so concurrent bookings only ever collide
on the increments, which the store applies to the latest committed counters
without aborting.
"""

from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.cache.ttl_cache import TtlCache
from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.document_store.field_value import SERVER_TIMESTAMP, Increment
from src.platform.document_store.i_document_store import AbstractDocumentTransaction
from src.platform.document_store.transaction_runner import TransactionRunner
from src.platform.exception.exceptions import (
    CommitFailedError,
    IdentityMismatchError,
    UnauthenticatedError,
)
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.dto.booking_commit_result import BookingCommitResult
from src.service.booking.app.dto.booking_draft import BookingDraft
from src.service.booking.app.interface.i_identity_provider import IIdentityProvider
from src.service.booking.app.interface.i_pending_sync_store import IPendingSyncStore
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.entity.pending_sync_record_entity import PendingSyncRecord
from src.service.booking.domain.enum.sync_state import SyncState
from src.service.booking.domain.value_object.booking_id import generate_booking_id
from src.service.booking.domain.value_object.document_path import (
    ANALYTICS_PATH,
    booking_path,
    user_bookings_cache_key,
    user_trip_path,
)


def stage_new_booking(txn: AbstractDocumentTransaction, booking: Booking) -> None:
    """Stage the booking, its trip index entry and the analytics increments"""
    booking_document = {
        **booking.to_document(),
        'createdAt': SERVER_TIMESTAMP,
        'updatedAt': SERVER_TIMESTAMP,
    }
    trip_document = {
        **booking.trip_document(),
        'createdAt': SERVER_TIMESTAMP,
        'updatedAt': SERVER_TIMESTAMP,
    }
    booking_type = str(booking.type)
    amount = booking.total_amount

    txn.set(booking_path(booking.id), booking_document)
    txn.set(user_trip_path(booking.user_id, booking.id), trip_document)
    txn.set(
        ANALYTICS_PATH,
        {
            'totalRevenue': Increment(amount),
            'totalBookings': Increment(1),
            'bookingsByType': {booking_type: Increment(1)},
            'revenueByType': {booking_type: Increment(amount)},
            'lastUpdated': SERVER_TIMESTAMP,
        },
        merge=True,
    )


class CreateBookingUseCase:
    def __init__(
        self,
        *,
        transaction_runner: TransactionRunner,
        identity_provider: IIdentityProvider,
        user_bookings_cache: TtlCache,
        pending_sync_store: IPendingSyncStore,
        id_prefix: str = settings.BOOKING_ID_PREFIX,
        pending_sync_enabled: bool = settings.PENDING_SYNC_ENABLED,
    ) -> None:
        self.transaction_runner = transaction_runner
        self.identity_provider = identity_provider
        self.user_bookings_cache = user_bookings_cache
        self.pending_sync_store = pending_sync_store
        self.id_prefix = id_prefix
        self.pending_sync_enabled = pending_sync_enabled
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        transaction_runner: TransactionRunner = Depends(Provide[Container.transaction_runner]),
        identity_provider: IIdentityProvider = Depends(Provide[Container.identity_provider]),
        user_bookings_cache: TtlCache = Depends(Provide[Container.user_bookings_cache]),
        pending_sync_store: IPendingSyncStore = Depends(Provide[Container.pending_sync_store]),
    ) -> Self:
        return cls(
            transaction_runner=transaction_runner,
            identity_provider=identity_provider,
            user_bookings_cache=user_bookings_cache,
            pending_sync_store=pending_sync_store,
        )

    @Logger.io
    async def execute(self, *, draft: BookingDraft) -> BookingCommitResult:
        with self.tracer.start_as_current_span('use_case.create_booking') as span:
            caller_id = self.identity_provider.current_user_id()
            if not caller_id:
                raise UnauthenticatedError()
            if draft.user_id is not None and draft.user_id != caller_id:
                raise IdentityMismatchError()

            booking = Booking.create(
                id=generate_booking_id(draft.type, prefix=self.id_prefix),
                user_id=caller_id,
                type=draft.type,
                item=draft.item,
                user_info=draft.user_info,
                booking_details=draft.booking_details,
                payment_info=draft.payment_info,
                status=draft.status,
            )
            span.set_attribute('booking.id', booking.id)
            span.set_attribute('booking.type', str(booking.type))

            async def _write(txn: AbstractDocumentTransaction) -> None:
                stage_new_booking(txn, booking)

            try:
                await self.transaction_runner.run(
                    _write, operation='create_booking', context=booking.id
                )
            except CommitFailedError as e:
                if not self.pending_sync_enabled:
                    raise
                await self.pending_sync_store.save(
                    record=PendingSyncRecord.create(booking=booking.to_document(), error=e.message)
                )
                span.set_attribute('booking.sync_state', str(SyncState.PENDING_SYNC))
                Logger.base.warning(f'💾 [BOOKING] {booking.id} held for sync: {e.message}')
                return BookingCommitResult(booking_id=booking.id, sync_state=SyncState.PENDING_SYNC)

            self.user_bookings_cache.invalidate(user_bookings_cache_key(caller_id))
            span.set_attribute('booking.sync_state', str(SyncState.COMMITTED))
            Logger.base.info(f'✅ [BOOKING] Committed {booking.id} for user {caller_id}')
            return BookingCommitResult(booking_id=booking.id, sync_state=SyncState.COMMITTED)
