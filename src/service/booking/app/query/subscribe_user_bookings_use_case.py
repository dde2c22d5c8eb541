"""
Live view of a user's bookings.

Delivery:
- The current page is delivered once right away, before execute() returns
- A change notification starts a throttle timer if none is running
- Further notifications inside the window are absorbed
- When the timer fires the latest page is queried and delivered once

Every delivery refreshes the user's cache entry. A failing callback is
logged and the subscription keeps running.
unsubscribe() cancels deliveries still in flight, so no callback runs once
it has returned.
"""

import asyncio
from collections.abc import Awaitable, Callable
import inspect
from typing import List, Optional, Self, Set

import anyio
from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.cache.ttl_cache import TtlCache
from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.document_store.i_document_store import IDocumentStore
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.query.list_user_bookings_use_case import ListUserBookingsUseCase
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.value_object.document_path import BOOKINGS_COLLECTION


BookingsCallback = Callable[[List[Booking]], Optional[Awaitable[None]]]


class UserBookingsSubscription:
    def __init__(
        self,
        *,
        user_id: str,
        document_store: IDocumentStore,
        list_user_bookings: ListUserBookingsUseCase,
        callback: BookingsCallback,
        throttle_seconds: float,
    ) -> None:
        self.user_id = user_id
        self._document_store = document_store
        self._list_user_bookings = list_user_bookings
        self._callback = callback
        self._throttle_seconds = throttle_seconds
        self._deliver_lock = anyio.Lock()
        self._watch_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        # Throttled deliveries still sleeping or already querying
        self._delivery_tasks: Set[asyncio.Task] = set()
        self._closed = False
        self._ready = asyncio.Event()
        self._start_error: Optional[BaseException] = None
        self.delivery_count = 0

    @property
    def active(self) -> bool:
        return (
            not self._closed
            and self._watch_task is not None
            and not self._watch_task.done()
        )

    async def start(self) -> None:
        self._watch_task = asyncio.create_task(self._watch())
        await self._ready.wait()
        if self._start_error is not None:
            raise self._start_error

    async def unsubscribe(self) -> None:
        self._closed = True
        current = asyncio.current_task()
        tasks = [t for t in (*self._delivery_tasks, self._watch_task) if t not in (None, current)]
        for task in tasks:
            if not task.done():
                task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._delivery_tasks.clear()
        self._timer_task = None
        Logger.base.debug(f'📡 [SUBSCRIPTION] Closed for user {self.user_id}')

    async def _watch(self) -> None:
        try:
            async with self._document_store.watch(
                BOOKINGS_COLLECTION, where={'userId': self.user_id}
            ) as changes:
                await self._deliver()
                self._ready.set()
                async for _ in changes:
                    self._schedule_delivery()
        except Exception as e:
            if not self._ready.is_set():
                self._start_error = e
            else:
                Logger.base.error(f'❌ [SUBSCRIPTION] Watch for user {self.user_id} ended: {e}')
        finally:
            self._ready.set()

    def _schedule_delivery(self) -> None:
        if self._closed or self._timer_task is not None:
            # Timer already running, this change is picked up when it fires
            return
        task = asyncio.create_task(self._delayed_delivery())
        self._timer_task = task
        self._delivery_tasks.add(task)
        task.add_done_callback(self._delivery_tasks.discard)

    async def _delayed_delivery(self) -> None:
        await anyio.sleep(self._throttle_seconds)
        # Changes arriving from here on start a new window
        self._timer_task = None
        try:
            await self._deliver()
        except Exception as e:
            Logger.base.warning(f'⚠️ [SUBSCRIPTION] Refresh failed for user {self.user_id}: {e}')

    async def _deliver(self) -> None:
        async with self._deliver_lock:
            if self._closed:
                return
            bookings = await self._list_user_bookings.refresh(user_id=self.user_id)
            if self._closed:
                return
            self.delivery_count += 1
            try:
                result = self._callback(bookings)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                Logger.base.exception(
                    f'❌ [SUBSCRIPTION] Callback failed for user {self.user_id}: {e}'
                )


class SubscribeUserBookingsUseCase:
    def __init__(
        self,
        *,
        document_store: IDocumentStore,
        user_bookings_cache: TtlCache,
    ) -> None:
        self.document_store = document_store
        self.list_user_bookings = ListUserBookingsUseCase(
            document_store=document_store, user_bookings_cache=user_bookings_cache
        )

    @classmethod
    @inject
    def depends(
        cls,
        document_store: IDocumentStore = Depends(Provide[Container.document_store]),
        user_bookings_cache: TtlCache = Depends(Provide[Container.user_bookings_cache]),
    ) -> Self:
        return cls(document_store=document_store, user_bookings_cache=user_bookings_cache)

    @Logger.io
    async def execute(
        self,
        *,
        user_id: str,
        callback: BookingsCallback,
        throttle_seconds: Optional[float] = None,
    ) -> UserBookingsSubscription:
        subscription = UserBookingsSubscription(
            user_id=user_id,
            document_store=self.document_store,
            list_user_bookings=self.list_user_bookings,
            callback=callback,
            throttle_seconds=(
                settings.USER_BOOKINGS_THROTTLE_SECONDS
                if throttle_seconds is None
                else throttle_seconds
            ),
        )
        await subscription.start()
        Logger.base.info(f'📡 [SUBSCRIPTION] Watching bookings of user {user_id}')
        return subscription
