"""
Document Store Interface

Multi-document transactional store used by the booking service.

Capabilities:
- Optimistic transactions: every read happens before the first write
- Atomic numeric increments (`Increment`) resolved by the store at commit
- Server-assigned timestamps (`SERVER_TIMESTAMP`)
- Live change subscriptions per collection (`watch`)

Usage:
    async with store.transaction() as txn:
        snapshot = await txn.get('bookings/HR-BT-...')
        txn.update('bookings/HR-BT-...', {'status': 'cancelled'})
        await txn.commit()

Leaving the block without commit() discards the staged writes.
"""

from __future__ import annotations

import abc
from collections.abc import Mapping
from contextlib import AbstractAsyncContextManager
from typing import Any, Self

from anyio.streams.memory import MemoryObjectReceiveStream

from src.platform.document_store.field_value import (
    DocumentChange,
    DocumentSnapshot,
    WriteKind,
    WriteOp,
    validate_document_path,
)
from src.platform.exception.exceptions import TransactionOrderingViolationError


class AbstractDocumentTransaction(abc.ABC):
    def __init__(self) -> None:
        self._writes: list[WriteOp] = []
        self._finished = False

    async def __aenter__(self) -> Self:
        await self._begin()
        return self

    async def __aexit__(self, *args: Any) -> None:
        if not self._finished:
            await self.rollback()

    @property
    def writes(self) -> list[WriteOp]:
        return list(self._writes)

    async def get(self, path: str) -> DocumentSnapshot | None:
        if self._writes:
            raise TransactionOrderingViolationError(
                f'Read of {path} after {len(self._writes)} staged write(s); '
                'all reads must precede writes in a transaction'
            )
        return await self._get(validate_document_path(path))

    def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        kind = WriteKind.MERGE if merge else WriteKind.SET
        self._writes.append(WriteOp(kind=kind, path=validate_document_path(path), data=data))

    def update(self, path: str, data: Mapping[str, Any]) -> None:
        """Merge fields into an existing document; the commit fails if it does not exist."""
        self._writes.append(
            WriteOp(kind=WriteKind.UPDATE, path=validate_document_path(path), data=data)
        )

    async def commit(self) -> list[DocumentChange]:
        try:
            return await self._commit()
        finally:
            self._finished = True

    async def rollback(self) -> None:
        self._writes.clear()
        self._finished = True
        await self._rollback()

    async def _begin(self) -> None:
        return None

    @abc.abstractmethod
    async def _get(self, path: str) -> DocumentSnapshot | None:
        raise NotImplementedError

    @abc.abstractmethod
    async def _commit(self) -> list[DocumentChange]:
        raise NotImplementedError

    @abc.abstractmethod
    async def _rollback(self) -> None:
        raise NotImplementedError


class IDocumentStore(abc.ABC):
    @abc.abstractmethod
    def transaction(self) -> AbstractDocumentTransaction:
        raise NotImplementedError

    @abc.abstractmethod
    async def get(self, path: str) -> DocumentSnapshot | None:
        raise NotImplementedError

    @abc.abstractmethod
    async def query(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        """Equality filters on top-level fields, single-field ordering."""
        raise NotImplementedError

    @abc.abstractmethod
    def watch(
        self, collection: str, *, where: Mapping[str, Any] | None = None
    ) -> AbstractAsyncContextManager[MemoryObjectReceiveStream[DocumentChange]]:
        """Subscribe to committed changes of a collection.

        The subscription is active once the context is entered, so a query run
        inside the block cannot miss a change committed after it.
        """
        raise NotImplementedError
