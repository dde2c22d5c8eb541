"""
Transaction retry loop

Runs a transaction body against a fresh transaction per attempt:
- TransactionConflictError / StoreUnavailableError → jittered backoff, re-run from scratch
- Domain errors (NotFound, Forbidden, DomainError, ...) → propagate untouched
- TransactionOrderingViolationError → propagate, a defect is never retried
- Anything else → logged with operation context, surfaced as CommitFailedError
- Attempts exhausted → CommitFailedError
"""

from collections.abc import Awaitable, Callable
import random
from typing import TypeVar

import anyio

from src.platform.document_store.i_document_store import (
    AbstractDocumentTransaction,
    IDocumentStore,
)
from src.platform.exception.exceptions import (
    CommitFailedError,
    CustomBaseError,
    StoreUnavailableError,
    TransactionConflictError,
    TransactionOrderingViolationError,
)
from src.platform.logging.loguru_io import Logger


T = TypeVar('T')

TransactionBody = Callable[[AbstractDocumentTransaction], Awaitable[T]]


class TransactionRunner:
    def __init__(
        self,
        *,
        store: IDocumentStore,
        max_attempts: int = 5,
        backoff_base_seconds: float = 0.05,
        backoff_max_seconds: float = 1.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self.store = store
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_max_seconds = backoff_max_seconds

    def backoff_delay(self, attempt: int) -> float:
        """Full jitter: uniform(0, min(cap, base * 2**(attempt - 1)))"""
        ceiling = min(self.backoff_max_seconds, self.backoff_base_seconds * 2 ** (attempt - 1))
        return random.uniform(0, ceiling)

    async def run(self, body: TransactionBody[T], *, operation: str, context: str = '') -> T:
        last_error: CustomBaseError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.store.transaction() as txn:
                    result = await body(txn)
                    await txn.commit()
                    return result
            except (TransactionConflictError, StoreUnavailableError) as e:
                last_error = e
                Logger.base.warning(
                    f'🔁 [{operation}] attempt {attempt}/{self.max_attempts} failed '
                    f'for {context}: {e.message}'
                )
                if attempt < self.max_attempts:
                    await anyio.sleep(self.backoff_delay(attempt))
            except (CustomBaseError, TransactionOrderingViolationError):
                raise
            except Exception as e:
                Logger.base.exception(f'❌ [{operation}] unexpected store error for {context}: {e}')
                raise CommitFailedError() from e

        Logger.base.error(
            f'❌ [{operation}] gave up on {context} after {self.max_attempts} attempts'
        )
        raise CommitFailedError() from last_error
