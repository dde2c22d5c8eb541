from typing import List, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.cache.ttl_cache import TtlCache
from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.document_store.i_document_store import IDocumentStore
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.value_object.document_path import (
    BOOKINGS_COLLECTION,
    user_bookings_cache_key,
)


class ListUserBookingsUseCase:
    """A user's most recent bookings, newest first, behind a read-through TTL cache"""

    def __init__(
        self,
        *,
        document_store: IDocumentStore,
        user_bookings_cache: TtlCache,
        page_size: int = settings.USER_BOOKINGS_PAGE_SIZE,
    ) -> None:
        self.document_store = document_store
        self.user_bookings_cache = user_bookings_cache
        self.page_size = page_size

    @classmethod
    @inject
    def depends(
        cls,
        document_store: IDocumentStore = Depends(Provide[Container.document_store]),
        user_bookings_cache: TtlCache = Depends(Provide[Container.user_bookings_cache]),
    ) -> Self:
        return cls(document_store=document_store, user_bookings_cache=user_bookings_cache)

    @Logger.io
    async def execute(self, *, user_id: str) -> List[Booking]:
        cached = self.user_bookings_cache.get(user_bookings_cache_key(user_id))
        if cached is not None:
            return list(cached)
        return await self.refresh(user_id=user_id)

    async def refresh(self, *, user_id: str) -> List[Booking]:
        """Query the store and replace the cache entry

        The entry is left alone when the user's bookings were invalidated
        while the query ran; the next read queries again.
        """
        key = user_bookings_cache_key(user_id)
        generation = self.user_bookings_cache.generation(key)
        snapshots = await self.document_store.query(
            BOOKINGS_COLLECTION,
            where={'userId': user_id},
            order_by='createdAt',
            descending=True,
            limit=self.page_size,
        )
        bookings = [Booking.from_document(s.data) for s in snapshots]
        if not self.user_bookings_cache.set(key, list(bookings), generation=generation):
            Logger.base.debug(f'🔄 [CACHE] Dropped stale bookings page for user {user_id}')
        return bookings
