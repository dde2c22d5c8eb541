from src.platform.document_store.field_value import SERVER_TIMESTAMP
from src.platform.document_store.i_document_store import AbstractDocumentTransaction
from src.platform.document_store.transaction_runner import TransactionRunner
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.entity.booking_analytics_entity import BookingAnalytics
from src.service.booking.domain.value_object.document_path import ANALYTICS_PATH


class InitializeAnalyticsUseCase:
    """Create zeroed analytics counters if they do not exist yet. Safe to run on every startup."""

    def __init__(self, *, transaction_runner: TransactionRunner) -> None:
        self.transaction_runner = transaction_runner

    @Logger.io
    async def execute(self) -> bool:
        async def _initialize(txn: AbstractDocumentTransaction) -> bool:
            if await txn.get(ANALYTICS_PATH) is not None:
                return False
            txn.set(
                ANALYTICS_PATH,
                {**BookingAnalytics().to_document(), 'lastUpdated': SERVER_TIMESTAMP},
            )
            return True

        created = await self.transaction_runner.run(
            _initialize, operation='initialize_analytics', context=ANALYTICS_PATH
        )
        if created:
            Logger.base.info('📊 [ANALYTICS] Counters initialized')
        return created
