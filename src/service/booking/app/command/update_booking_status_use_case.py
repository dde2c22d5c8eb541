from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.cache.ttl_cache import TtlCache
from src.platform.config.di import Container
from src.platform.document_store.field_value import SERVER_TIMESTAMP
from src.platform.document_store.i_document_store import AbstractDocumentTransaction
from src.platform.document_store.transaction_runner import TransactionRunner
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.value_object.document_path import (
    booking_path,
    user_bookings_cache_key,
    user_trip_path,
)


class UpdateBookingStatusUseCase:
    """
    Change a booking's status.

    Booking and trip index entry are updated in the same transaction, so the
    entry's status always matches the booking. Cancellation is a status
    change like any other; bookings are never deleted.
    """

    def __init__(
        self,
        *,
        transaction_runner: TransactionRunner,
        user_bookings_cache: TtlCache,
    ) -> None:
        self.transaction_runner = transaction_runner
        self.user_bookings_cache = user_bookings_cache

    @classmethod
    @inject
    def depends(
        cls,
        transaction_runner: TransactionRunner = Depends(Provide[Container.transaction_runner]),
        user_bookings_cache: TtlCache = Depends(Provide[Container.user_bookings_cache]),
    ) -> Self:
        return cls(transaction_runner=transaction_runner, user_bookings_cache=user_bookings_cache)

    @Logger.io
    async def execute(
        self,
        *,
        booking_id: str,
        new_status: BookingStatus,
        actor_id: Optional[str] = None,
    ) -> Booking:
        async def _transition(txn: AbstractDocumentTransaction) -> Booking:
            snapshot = await txn.get(booking_path(booking_id))
            if snapshot is None:
                raise NotFoundError('Booking not found')

            booking = Booking.from_document(snapshot.data)
            if actor_id is not None and booking.user_id != actor_id:
                raise ForbiddenError('Only the booking owner can change its status')

            updated = booking.transition_to(new_status)
            changes = {'status': str(updated.status), 'updatedAt': SERVER_TIMESTAMP}
            txn.update(booking_path(booking.id), changes)
            txn.update(user_trip_path(booking.user_id, booking.id), changes)
            return updated

        updated = await self.transaction_runner.run(
            _transition, operation='update_booking_status', context=booking_id
        )
        self.user_bookings_cache.invalidate(user_bookings_cache_key(updated.user_id))
        Logger.base.info(f'🔄 [BOOKING] {booking_id} → {updated.status}')
        return updated
