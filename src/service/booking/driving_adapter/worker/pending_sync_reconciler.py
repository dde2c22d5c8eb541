"""
Background replay of pending-sync bookings

Runs ReconcilePendingBookingsUseCase every interval until cancelled.
A failing round is logged; the next round tries again.
"""

import anyio

from src.platform.logging.loguru_io import Logger
from src.service.booking.app.command.reconcile_pending_bookings_use_case import (
    ReconcilePendingBookingsUseCase,
)


class PendingSyncReconciler:
    def __init__(
        self,
        *,
        use_case: ReconcilePendingBookingsUseCase,
        interval_seconds: float,
    ) -> None:
        self.use_case = use_case
        self.interval_seconds = interval_seconds

    async def run_once(self) -> None:
        try:
            report = await self.use_case.execute()
        except Exception as e:
            Logger.base.error(f'❌ [RECONCILER] Round failed: {e}')
            return

        if report.committed or report.already_present or report.retrying or report.failed:
            Logger.base.info(
                f'🔄 [RECONCILER] committed={report.committed} '
                f'already_present={report.already_present} '
                f'retrying={report.retrying} failed={report.failed}'
            )

    async def run_forever(self) -> None:
        Logger.base.info(f'🔄 [RECONCILER] Started (interval={self.interval_seconds}s)')
        while True:
            await self.run_once()
            await anyio.sleep(self.interval_seconds)
