"""
Replay bookings held in degraded mode.

Each pending record goes through the same atomic write as a fresh booking.
The replay reads the booking path first and writes nothing when the booking
already exists, so a record replayed twice (crash between commit and record
deletion) still yields one booking and one set of analytics increments.
"""

import attrs

from src.platform.cache.ttl_cache import TtlCache
from src.platform.document_store.i_document_store import AbstractDocumentTransaction
from src.platform.document_store.transaction_runner import TransactionRunner
from src.platform.exception.exceptions import CommitFailedError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.command.create_booking_use_case import stage_new_booking
from src.service.booking.app.interface.i_pending_sync_store import IPendingSyncStore
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.enum.sync_state import SyncState
from src.service.booking.domain.value_object.document_path import (
    booking_path,
    user_bookings_cache_key,
)


@attrs.frozen
class ReconcileReport:
    committed: int = 0
    already_present: int = 0
    retrying: int = 0
    failed: int = 0


class ReconcilePendingBookingsUseCase:
    def __init__(
        self,
        *,
        transaction_runner: TransactionRunner,
        pending_sync_store: IPendingSyncStore,
        user_bookings_cache: TtlCache,
        max_replay_attempts: int,
    ) -> None:
        self.transaction_runner = transaction_runner
        self.pending_sync_store = pending_sync_store
        self.user_bookings_cache = user_bookings_cache
        self.max_replay_attempts = max_replay_attempts

    @Logger.io
    async def execute(self) -> ReconcileReport:
        committed = already_present = retrying = failed = 0

        for record in await self.pending_sync_store.list_by_state(state=SyncState.PENDING_SYNC):
            booking = Booking.from_document(record.booking)

            async def _replay(txn: AbstractDocumentTransaction, booking: Booking = booking) -> bool:
                if await txn.get(booking_path(booking.id)) is not None:
                    return False
                stage_new_booking(txn, booking)
                return True

            try:
                written = await self.transaction_runner.run(
                    _replay, operation='replay_pending_booking', context=booking.id
                )
            except CommitFailedError as e:
                record = record.record_failure(
                    error=e.message, max_attempts=self.max_replay_attempts
                )
                await self.pending_sync_store.save(record=record)
                if record.state == SyncState.FAILED:
                    failed += 1
                    Logger.base.error(
                        f'❌ [PENDING_SYNC] {booking.id} failed after {record.attempts} replays'
                    )
                else:
                    retrying += 1
                continue

            await self.pending_sync_store.delete(booking_id=booking.id)
            self.user_bookings_cache.invalidate(user_bookings_cache_key(booking.user_id))
            if written:
                committed += 1
                Logger.base.info(f'✅ [PENDING_SYNC] Replayed {booking.id}')
            else:
                already_present += 1

        return ReconcileReport(
            committed=committed,
            already_present=already_present,
            retrying=retrying,
            failed=failed,
        )
