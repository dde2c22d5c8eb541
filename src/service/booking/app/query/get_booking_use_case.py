from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.document_store.i_document_store import IDocumentStore
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.value_object.document_path import booking_path


class GetBookingUseCase:
    def __init__(self, *, document_store: IDocumentStore) -> None:
        self.document_store = document_store

    @classmethod
    @inject
    def depends(
        cls, document_store: IDocumentStore = Depends(Provide[Container.document_store])
    ) -> Self:
        return cls(document_store=document_store)

    @Logger.io
    async def execute(self, *, booking_id: str) -> Optional[Booking]:
        snapshot = await self.document_store.get(booking_path(booking_id))
        if snapshot is None:
            return None
        return Booking.from_document(snapshot.data)
