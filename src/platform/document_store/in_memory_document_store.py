"""
In-memory Document Store

Process-local implementation of IDocumentStore used by tests and by the
`memory` backend setting.

Concurrency model:
- Every read inside a transaction records the version it observed
- commit() validates those versions under one lock, then applies all writes
- A changed version aborts the commit with TransactionConflictError
- Writes of one commit share a single server timestamp
"""

from collections import defaultdict
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
import copy
from typing import Any

import anyio
from anyio import WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from src.platform.document_store.field_value import (
    DocumentChange,
    DocumentSnapshot,
    WriteKind,
    WriteOp,
    apply_write,
    collection_of,
    matches,
    validate_document_path,
)
from src.platform.document_store.i_document_store import (
    AbstractDocumentTransaction,
    IDocumentStore,
)
from src.platform.exception.exceptions import NotFoundError, TransactionConflictError
from src.platform.logging.loguru_io import Logger


_Watcher = tuple[Mapping[str, Any] | None, MemoryObjectSendStream[DocumentChange]]


class InMemoryDocumentTransaction(AbstractDocumentTransaction):
    def __init__(self, store: 'InMemoryDocumentStore') -> None:
        super().__init__()
        self._store = store
        self._read_versions: dict[str, int] = {}

    async def _get(self, path: str) -> DocumentSnapshot | None:
        snapshot = await self._store.get(path)
        self._read_versions[path] = snapshot.version if snapshot else 0
        return snapshot

    async def _commit(self) -> list[DocumentChange]:
        return await self._store._commit_transaction(dict(self._read_versions), self.writes)

    async def _rollback(self) -> None:
        self._read_versions.clear()


class InMemoryDocumentStore(IDocumentStore):
    WATCH_BUFFER_SIZE = 100

    def __init__(self) -> None:
        # path → (data, version)
        self._documents: dict[str, tuple[dict[str, Any], int]] = {}
        self._lock = anyio.Lock()
        self._last_timestamp: datetime | None = None
        # collection → watchers
        self._watchers: dict[str, list[_Watcher]] = defaultdict(list)

    def transaction(self) -> InMemoryDocumentTransaction:
        return InMemoryDocumentTransaction(self)

    async def get(self, path: str) -> DocumentSnapshot | None:
        validate_document_path(path)
        await anyio.sleep(0)
        entry = self._documents.get(path)
        if entry is None:
            return None
        data, version = entry
        return DocumentSnapshot(path=path, data=copy.deepcopy(data), version=version)

    async def query(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        await anyio.sleep(0)
        results = [
            DocumentSnapshot(path=path, data=copy.deepcopy(data), version=version)
            for path, (data, version) in self._documents.items()
            if collection_of(path) == collection and matches(data, where)
        ]
        if order_by is not None:
            # Documents without the field sort last in either direction
            present = [s for s in results if s.data.get(order_by) is not None]
            missing = [s for s in results if s.data.get(order_by) is None]
            present.sort(key=lambda s: s.data[order_by], reverse=descending)
            results = present + missing
        if limit is not None:
            results = results[:limit]
        return results

    @asynccontextmanager
    async def watch(
        self, collection: str, *, where: Mapping[str, Any] | None = None
    ) -> AsyncIterator[MemoryObjectReceiveStream[DocumentChange]]:
        send_stream, receive_stream = create_memory_object_stream[DocumentChange](
            max_buffer_size=self.WATCH_BUFFER_SIZE
        )
        watcher: _Watcher = (where, send_stream)
        self._watchers[collection].append(watcher)
        Logger.base.debug(
            f'📡 [STORE] watch {collection} (watchers: {len(self._watchers[collection])})'
        )
        try:
            yield receive_stream
        finally:
            watchers = self._watchers.get(collection, [])
            if watcher in watchers:
                watchers.remove(watcher)
            if not watchers:
                self._watchers.pop(collection, None)
            await send_stream.aclose()
            await receive_stream.aclose()

    def _next_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    async def _commit_transaction(
        self, read_versions: dict[str, int], writes: list[WriteOp]
    ) -> list[DocumentChange]:
        async with self._lock:
            for path, observed in read_versions.items():
                current = self._documents.get(path)
                current_version = current[1] if current else 0
                if current_version != observed:
                    raise TransactionConflictError(
                        f'Document {path} changed during transaction '
                        f'(read version {observed}, now {current_version})'
                    )

            now = self._next_timestamp()
            staged: dict[str, tuple[dict[str, Any], int]] = {}
            changes: list[DocumentChange] = []
            for op in writes:
                existing = staged.get(op.path) or self._documents.get(op.path)
                if op.kind is WriteKind.UPDATE and existing is None:
                    raise NotFoundError(f'Document {op.path} does not exist')
                data = apply_write(existing[0] if existing else None, op, now)
                version = (existing[1] if existing else 0) + 1
                staged[op.path] = (data, version)
                changes.append(
                    DocumentChange(
                        path=op.path, collection=collection_of(op.path), data=copy.deepcopy(data)
                    )
                )

            self._documents.update(staged)

        self._publish(changes)
        return changes

    def _publish(self, changes: list[DocumentChange]) -> None:
        for change in changes:
            for where, send_stream in list(self._watchers.get(change.collection, [])):
                if not matches(change.data, where):
                    continue
                try:
                    send_stream.send_nowait(change)
                except WouldBlock:
                    Logger.base.warning(f'⚠️ [STORE] watcher full, dropping change {change.path}')
                except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                    continue
