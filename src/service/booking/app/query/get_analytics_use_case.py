from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.document_store.i_document_store import IDocumentStore
from src.service.booking.domain.entity.booking_analytics_entity import BookingAnalytics
from src.service.booking.domain.value_object.document_path import ANALYTICS_PATH


class GetAnalyticsUseCase:
    def __init__(self, *, document_store: IDocumentStore) -> None:
        self.document_store = document_store

    @classmethod
    @inject
    def depends(
        cls, document_store: IDocumentStore = Depends(Provide[Container.document_store])
    ) -> Self:
        return cls(document_store=document_store)

    async def execute(self) -> BookingAnalytics:
        snapshot = await self.document_store.get(ANALYTICS_PATH)
        if snapshot is None:
            return BookingAnalytics()
        return BookingAnalytics.from_document(snapshot.data)
