from typing import List, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.document_store.i_document_store import IDocumentStore
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.entity.user_trip_entity import UserTrip
from src.service.booking.domain.value_object.document_path import user_trips_collection


class ListUserTripsUseCase:
    def __init__(self, *, document_store: IDocumentStore) -> None:
        self.document_store = document_store

    @classmethod
    @inject
    def depends(
        cls, document_store: IDocumentStore = Depends(Provide[Container.document_store])
    ) -> Self:
        return cls(document_store=document_store)

    @Logger.io
    async def execute(self, *, user_id: str) -> List[UserTrip]:
        snapshots = await self.document_store.query(
            user_trips_collection(user_id),
            order_by='createdAt',
            descending=True,
            limit=settings.USER_BOOKINGS_PAGE_SIZE,
        )
        return [UserTrip.from_document(s.data) for s in snapshots]
