from unittest.mock import AsyncMock, patch

import pytest

from src.platform.document_store.transaction_runner import TransactionRunner
from src.platform.exception.exceptions import (
    CommitFailedError,
    DomainError,
    StoreUnavailableError,
    TransactionConflictError,
    TransactionOrderingViolationError,
)


async def _write_booking(txn):
    txn.set('bookings/B1', {'status': 'confirmed'})
    return 'B1'


@pytest.mark.unit
class TestTransactionRunner:
    @pytest.mark.asyncio
    async def test_returns_body_result(self, transaction_runner, document_store):
        assert await transaction_runner.run(_write_booking, operation='test') == 'B1'
        assert await document_store.get('bookings/B1') is not None

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, transaction_runner, document_store):
        document_store._commit_transaction = AsyncMock(side_effect=TransactionConflictError())

        with pytest.raises(CommitFailedError) as exc_info:
            await transaction_runner.run(_write_booking, operation='test')

        assert document_store._commit_transaction.await_count == 5
        assert isinstance(exc_info.value.__cause__, TransactionConflictError)

    @pytest.mark.asyncio
    async def test_unavailable_store_is_retried(self, transaction_runner, document_store):
        original = document_store._commit_transaction
        failures = [StoreUnavailableError(), StoreUnavailableError()]

        async def _flaky_commit(read_versions, writes):
            if failures:
                raise failures.pop()
            return await original(read_versions, writes)

        document_store._commit_transaction = _flaky_commit

        assert await transaction_runner.run(_write_booking, operation='test') == 'B1'
        assert failures == []
        assert await document_store.get('bookings/B1') is not None

    @pytest.mark.asyncio
    async def test_body_runs_again_on_each_attempt(self, transaction_runner, document_store):
        document_store._commit_transaction = AsyncMock(side_effect=TransactionConflictError())
        body = AsyncMock(return_value=None)

        with pytest.raises(CommitFailedError):
            await transaction_runner.run(body, operation='test')

        assert body.await_count == 5

    @pytest.mark.asyncio
    async def test_domain_errors_are_not_retried(self, transaction_runner):
        body = AsyncMock(side_effect=DomainError('bad input'))

        with pytest.raises(DomainError):
            await transaction_runner.run(body, operation='test')

        assert body.await_count == 1

    @pytest.mark.asyncio
    async def test_ordering_violation_is_not_retried(self, transaction_runner):
        calls = []

        async def _bad_body(txn):
            calls.append(1)
            txn.set('bookings/B1', {})
            await txn.get('bookings/B1')

        with pytest.raises(TransactionOrderingViolationError):
            await transaction_runner.run(_bad_body, operation='test')

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_commit_failed(self, transaction_runner):
        body = AsyncMock(side_effect=KeyError('boom'))

        with pytest.raises(CommitFailedError) as exc_info:
            await transaction_runner.run(body, operation='test')

        assert isinstance(exc_info.value.__cause__, KeyError)
        assert body.await_count == 1

    @pytest.mark.asyncio
    async def test_backoff_sleeps_between_attempts_only(self, document_store):
        runner = TransactionRunner(store=document_store, max_attempts=3)
        document_store._commit_transaction = AsyncMock(side_effect=TransactionConflictError())

        with patch(
            'src.platform.document_store.transaction_runner.anyio.sleep', new=AsyncMock()
        ) as sleep:
            with pytest.raises(CommitFailedError):
                await runner.run(_write_booking, operation='test')

        assert sleep.await_count == 2


@pytest.mark.unit
class TestBackoffDelay:
    def test_full_jitter_ceiling(self, document_store):
        runner = TransactionRunner(
            store=document_store, backoff_base_seconds=0.1, backoff_max_seconds=0.5
        )

        with patch('src.platform.document_store.transaction_runner.random.uniform') as uniform:
            uniform.side_effect = lambda low, high: high
            assert runner.backoff_delay(1) == pytest.approx(0.1)
            assert runner.backoff_delay(3) == pytest.approx(0.4)
            assert runner.backoff_delay(10) == pytest.approx(0.5)

    def test_delay_within_bounds(self, document_store):
        runner = TransactionRunner(store=document_store)

        for attempt in range(1, 8):
            assert 0 <= runner.backoff_delay(attempt) <= 1.0

    def test_rejects_zero_attempts(self, document_store):
        with pytest.raises(ValueError):
            TransactionRunner(store=document_store, max_attempts=0)
