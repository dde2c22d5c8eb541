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
from src.service.booking.domain.value_object.document_path import (
    booking_path,
    user_bookings_cache_key,
)


class AttachBookingDocumentUseCase:
    """Record the URL of the rendered booking document (PDF) on the booking"""

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
        self, *, booking_id: str, pdf_url: str, actor_id: Optional[str] = None
    ) -> Booking:
        async def _attach(txn: AbstractDocumentTransaction) -> Booking:
            snapshot = await txn.get(booking_path(booking_id))
            if snapshot is None:
                raise NotFoundError('Booking not found')

            booking = Booking.from_document(snapshot.data)
            if actor_id is not None and booking.user_id != actor_id:
                raise ForbiddenError('Only the booking owner can attach documents')

            updated = booking.attach_document(pdf_url)
            txn.update(
                booking_path(booking.id),
                {'pdfUrl': updated.pdf_url, 'updatedAt': SERVER_TIMESTAMP},
            )
            return updated

        updated = await self.transaction_runner.run(
            _attach, operation='attach_booking_document', context=booking_id
        )
        self.user_bookings_cache.invalidate(user_bookings_cache_key(updated.user_id))
        return updated
