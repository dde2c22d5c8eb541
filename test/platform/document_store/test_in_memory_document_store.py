"""
Unit tests for InMemoryDocumentStore

Focus:
1. Reads after a staged write are rejected
2. A document changed between read and commit aborts the commit
3. Commits apply all writes or none
4. watch() delivers committed changes of one collection
"""

import anyio
import pytest

from src.platform.document_store.field_value import SERVER_TIMESTAMP, Increment
from src.platform.exception.exceptions import (
    NotFoundError,
    TransactionConflictError,
    TransactionOrderingViolationError,
)


@pytest.mark.unit
class TestTransactionOrdering:
    @pytest.mark.asyncio
    async def test_read_after_write_is_rejected(self, document_store):
        async with document_store.transaction() as txn:
            txn.set('bookings/B1', {'status': 'pending'})

            with pytest.raises(TransactionOrderingViolationError):
                await txn.get('bookings/B2')

        assert await document_store.get('bookings/B1') is None

    @pytest.mark.asyncio
    async def test_reads_then_writes_commit(self, document_store):
        async with document_store.transaction() as txn:
            assert await txn.get('bookings/B1') is None
            txn.set('bookings/B1', {'status': 'pending'})
            await txn.commit()

        assert (await document_store.get('bookings/B1')).data == {'status': 'pending'}


@pytest.mark.unit
class TestOptimisticConcurrency:
    @pytest.mark.asyncio
    async def test_changed_document_aborts_commit(self, document_store):
        async with document_store.transaction() as setup:
            setup.set('counters/c', {'n': 1})
            await setup.commit()

        async with document_store.transaction() as first:
            snapshot = await first.get('counters/c')

            async with document_store.transaction() as second:
                await second.get('counters/c')
                second.set('counters/c', {'n': 5})
                await second.commit()

            first.set('counters/c', {'n': snapshot.data['n'] + 1})
            with pytest.raises(TransactionConflictError):
                await first.commit()

        assert (await document_store.get('counters/c')).data == {'n': 5}

    @pytest.mark.asyncio
    async def test_document_created_after_missing_read_aborts_commit(self, document_store):
        async with document_store.transaction() as first:
            assert await first.get('analytics/main') is None

            async with document_store.transaction() as second:
                second.set('analytics/main', {'totalBookings': 1})
                await second.commit()

            first.set('analytics/main', {'totalBookings': 0})
            with pytest.raises(TransactionConflictError):
                await first.commit()

    @pytest.mark.asyncio
    async def test_blind_increments_never_conflict(self, document_store):
        async def _increment() -> None:
            async with document_store.transaction() as txn:
                txn.set('analytics/main', {'totalBookings': Increment(1)}, merge=True)
                await txn.commit()

        async with anyio.create_task_group() as tg:
            for _ in range(50):
                tg.start_soon(_increment)

        assert (await document_store.get('analytics/main')).data == {'totalBookings': 50}


@pytest.mark.unit
class TestAtomicCommit:
    @pytest.mark.asyncio
    async def test_failed_update_discards_other_writes(self, document_store):
        async with document_store.transaction() as txn:
            txn.set('bookings/B1', {'status': 'confirmed'})
            txn.update('users/u/trips/B1', {'status': 'confirmed'})
            with pytest.raises(NotFoundError):
                await txn.commit()

        assert await document_store.get('bookings/B1') is None

    @pytest.mark.asyncio
    async def test_uncommitted_transaction_writes_nothing(self, document_store):
        async with document_store.transaction() as txn:
            txn.set('bookings/B1', {'status': 'confirmed'})

        assert await document_store.get('bookings/B1') is None

    @pytest.mark.asyncio
    async def test_writes_share_one_timestamp_and_versions_increase(self, document_store):
        async with document_store.transaction() as txn:
            txn.set('bookings/B1', {'createdAt': SERVER_TIMESTAMP})
            txn.set('users/u/trips/B1', {'createdAt': SERVER_TIMESTAMP})
            await txn.commit()
        async with document_store.transaction() as txn:
            txn.update('bookings/B1', {'updatedAt': SERVER_TIMESTAMP})
            await txn.commit()

        booking = await document_store.get('bookings/B1')
        trip = await document_store.get('users/u/trips/B1')
        assert booking.data['createdAt'] == trip.data['createdAt']
        assert booking.data['updatedAt'] > booking.data['createdAt']
        assert booking.version == 2
        assert trip.version == 1

    @pytest.mark.asyncio
    async def test_snapshots_are_copies(self, document_store):
        async with document_store.transaction() as txn:
            txn.set('bookings/B1', {'item': {'title': 'Tour'}})
            await txn.commit()

        snapshot = await document_store.get('bookings/B1')
        snapshot.data['item']['title'] = 'changed'

        assert (await document_store.get('bookings/B1')).data['item']['title'] == 'Tour'


@pytest.mark.unit
class TestQuery:
    @pytest.mark.asyncio
    async def test_filter_order_limit(self, document_store):
        async with document_store.transaction() as txn:
            txn.set('bookings/B1', {'userId': 'u', 'rank': 2})
            txn.set('bookings/B2', {'userId': 'u', 'rank': 3})
            txn.set('bookings/B3', {'userId': 'v', 'rank': 9})
            txn.set('bookings/B4', {'userId': 'u'})
            txn.set('users/u/trips/B1', {'userId': 'u', 'rank': 1})
            await txn.commit()

        results = await document_store.query(
            'bookings', where={'userId': 'u'}, order_by='rank', descending=True
        )
        assert [s.id for s in results] == ['B2', 'B1', 'B4']

        limited = await document_store.query('bookings', order_by='rank', limit=2)
        assert [s.id for s in limited] == ['B1', 'B2']


@pytest.mark.unit
class TestWatch:
    @pytest.mark.asyncio
    async def test_receives_matching_changes_of_collection(self, document_store):
        async with document_store.watch('bookings', where={'userId': 'u'}) as changes:
            async with document_store.transaction() as txn:
                txn.set('bookings/B1', {'userId': 'u'})
                txn.set('bookings/B2', {'userId': 'v'})
                txn.set('users/u/trips/B1', {'userId': 'u'})
                await txn.commit()

            with anyio.fail_after(1):
                change = await changes.receive()

            assert change.path == 'bookings/B1'
            assert change.collection == 'bookings'
            assert change.data == {'userId': 'u'}
            with pytest.raises(anyio.WouldBlock):
                changes.receive_nowait()

        assert document_store._watchers == {}
