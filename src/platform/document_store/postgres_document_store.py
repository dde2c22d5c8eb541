"""
PostgreSQL Document Store

IDocumentStore on top of the `documents` table (see document_table.py).

Transactions:
- One pooled connection per transaction; SERIALIZABLE once it reads,
  READ COMMITTED for write-only commits so hot counter rows never conflict
- Writes are staged in Python and flushed in commit(), so every read runs first
- Increment / SERVER_TIMESTAMP are rendered as jsonb_set expressions and
  resolved by PostgreSQL against the row being written
- SQLSTATE class 40 (serialization failure, deadlock) → TransactionConflictError
- Connection loss / timeouts → StoreUnavailableError

Change feed:
- After a successful commit each written document is published to Redis
  channel `document_changes:{collection}`; watch() subscribes to it
"""

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

import anyio
from anyio import WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
import asyncpg
from opentelemetry import trace
import orjson

from src.platform.database.asyncpg_setting import get_asyncpg_pool
from src.platform.document_store.field_value import (
    SERVER_TIMESTAMP,
    DocumentChange,
    DocumentSnapshot,
    FieldPath,
    Increment,
    WriteKind,
    WriteOp,
    collection_of,
    iter_leaves,
    matches,
    strip_transforms,
    validate_document_path,
)
from src.platform.document_store.i_document_store import (
    AbstractDocumentTransaction,
    IDocumentStore,
)
from src.platform.exception.exceptions import (
    NotFoundError,
    StoreUnavailableError,
    TransactionConflictError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.state.redis_client import redis_client


CHANGE_CHANNEL_PREFIX = 'document_changes'

_UNAVAILABLE_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.ConnectionDoesNotExistError,
    asyncpg.exceptions.CannotConnectNowError,
    OSError,
    TimeoutError,
)


def change_channel(collection: str) -> str:
    return f'{CHANGE_CHANNEL_PREFIX}:{collection}'


def _decode(data: Any) -> dict[str, Any]:
    if isinstance(data, (str, bytes)):
        return orjson.loads(data)
    return dict(data)


class _SqlParams:
    def __init__(self, *initial: Any) -> None:
        self.values: list[Any] = list(initial)

    def add(self, value: Any) -> str:
        self.values.append(value)
        return f'${len(self.values)}'


def _render_leaf(base: str, path: FieldPath, value: Any, params: _SqlParams) -> str:
    if value is SERVER_TIMESTAMP:
        return 'to_jsonb(now())'
    if isinstance(value, Increment):
        path_ref = params.add(list(path))
        amount = params.add(Decimal(str(value.amount)))
        return f'to_jsonb(COALESCE(({base} #>> {path_ref}::text[])::numeric, 0) + {amount}::numeric)'
    return f'{params.add(orjson.dumps(value).decode())}::jsonb'


def merge_expression(base: str, data: Mapping[str, Any], params: _SqlParams) -> str:
    """jsonb expression merging `data` leaf by leaf into the document `base`."""
    leaves = list(iter_leaves(data))
    parents: list[FieldPath] = []
    for path, _ in leaves:
        for depth in range(1, len(path)):
            if path[:depth] not in parents:
                parents.append(path[:depth])

    expr = base
    for parent in parents:
        ref = params.add(list(parent))
        expr = (
            f"jsonb_set({expr}, {ref}::text[], "
            f"COALESCE({base} #> {ref}::text[], '{{}}'::jsonb), true)"
        )
    for path, value in leaves:
        leaf = _render_leaf(base, path, value, params)
        expr = f'jsonb_set({expr}, {params.add(list(path))}::text[], {leaf}, true)'
    return expr


def replace_expression(data: Mapping[str, Any], params: _SqlParams) -> str:
    """jsonb expression for a full overwrite; sentinels resolve against an empty document."""
    plain, transforms = strip_transforms(data)
    expr = f'{params.add(orjson.dumps(plain).decode())}::jsonb'
    for path, value in transforms:
        leaf = _render_leaf("'{}'::jsonb", path, value, params)
        expr = f'jsonb_set({expr}, {params.add(list(path))}::text[], {leaf}, true)'
    return expr


def build_write_statement(op: WriteOp) -> tuple[str, list[Any]]:
    params = _SqlParams(op.path, collection_of(op.path))
    returning = 'RETURNING path, collection, data'

    if op.kind is WriteKind.UPDATE:
        expr = merge_expression('data', op.data, params)
        sql = (
            f'UPDATE documents SET data = {expr}, version = version + 1, updated_at = now() '
            f'WHERE path = $1 {returning}'
        )
    elif op.kind is WriteKind.SET:
        expr = replace_expression(op.data, params)
        sql = (
            f'INSERT INTO documents (path, collection, data) VALUES ($1, $2, {expr}) '
            'ON CONFLICT (path) DO UPDATE SET data = EXCLUDED.data, '
            'version = documents.version + 1, updated_at = now() '
            f'{returning}'
        )
    else:
        insert_expr = merge_expression("'{}'::jsonb", op.data, params)
        update_expr = merge_expression('documents.data', op.data, params)
        sql = (
            f'INSERT INTO documents (path, collection, data) VALUES ($1, $2, {insert_expr}) '
            f'ON CONFLICT (path) DO UPDATE SET data = {update_expr}, '
            'version = documents.version + 1, updated_at = now() '
            f'{returning}'
        )
    return sql, params.values


class PostgresDocumentTransaction(AbstractDocumentTransaction):
    """
    The database transaction starts on first use:
    - a read starts it SERIALIZABLE, so the reads are validated at commit
    - a commit without reads starts it READ COMMITTED, where concurrent upserts
      of the same row wait on the row lock and re-apply their increments to
      the latest committed version instead of failing
    """

    READ_ISOLATION = 'serializable'
    BLIND_WRITE_ISOLATION = 'read_committed'

    def __init__(self, store: 'PostgresDocumentStore') -> None:
        super().__init__()
        self._store = store
        self._pool: asyncpg.Pool | None = None
        self._conn: asyncpg.Connection | None = None
        self._tx: Any = None
        self.isolation: str | None = None

    async def _begin(self) -> None:
        try:
            self._pool = await get_asyncpg_pool()
            self._conn = await self._pool.acquire()
        except _UNAVAILABLE_ERRORS as e:
            await self._release()
            raise StoreUnavailableError(f'Document store unavailable: {e}') from e

    async def _start(self, isolation: str) -> asyncpg.Connection:
        if self._conn is None:
            raise RuntimeError('transaction used outside `async with`')
        if self._tx is None:
            tx = self._conn.transaction(isolation=isolation)
            try:
                await tx.start()
            except _UNAVAILABLE_ERRORS as e:
                raise StoreUnavailableError(f'Document store unavailable: {e}') from e
            self._tx = tx
            self.isolation = isolation
        return self._conn

    async def _get(self, path: str) -> DocumentSnapshot | None:
        conn = await self._start(self.READ_ISOLATION)
        try:
            row = await conn.fetchrow(
                'SELECT path, data, version FROM documents WHERE path = $1', path
            )
        except asyncpg.exceptions.TransactionRollbackError as e:
            raise TransactionConflictError(f'Conflict reading {path}: {e}') from e
        except _UNAVAILABLE_ERRORS as e:
            raise StoreUnavailableError(f'Document store unavailable: {e}') from e
        if row is None:
            return None
        return DocumentSnapshot(path=row['path'], data=_decode(row['data']), version=row['version'])

    async def _commit(self) -> list[DocumentChange]:
        changes: list[DocumentChange] = []
        try:
            conn = await self._start(self.BLIND_WRITE_ISOLATION)
            for op in self._writes:
                sql, args = build_write_statement(op)
                row = await conn.fetchrow(sql, *args)
                if row is None:
                    raise NotFoundError(f'Document {op.path} does not exist')
                changes.append(
                    DocumentChange(
                        path=row['path'], collection=row['collection'], data=_decode(row['data'])
                    )
                )
            await self._tx.commit()
        except asyncpg.exceptions.TransactionRollbackError as e:
            await self._abort()
            raise TransactionConflictError(f'Transaction aborted by the store: {e}') from e
        except _UNAVAILABLE_ERRORS as e:
            await self._abort()
            raise StoreUnavailableError(f'Document store unavailable: {e}') from e
        except BaseException:
            await self._abort()
            raise
        await self._release()

        await self._store.publish_changes(changes)
        return changes

    async def _rollback(self) -> None:
        await self._abort()

    async def _abort(self) -> None:
        if self._tx is not None:
            try:
                await self._tx.rollback()
            except (asyncpg.exceptions.InterfaceError, *_UNAVAILABLE_ERRORS) as e:
                Logger.base.warning(f'⚠️ [STORE] rollback failed: {e}')
            self._tx = None
        await self._release()

    async def _release(self) -> None:
        if self._conn is not None and self._pool is not None:
            await self._pool.release(self._conn)
        self._conn = None
        self._tx = None


class PostgresDocumentStore(IDocumentStore):
    WATCH_BUFFER_SIZE = 100

    def __init__(self) -> None:
        self.tracer = trace.get_tracer(__name__)

    def transaction(self) -> PostgresDocumentTransaction:
        return PostgresDocumentTransaction(self)

    async def get(self, path: str) -> DocumentSnapshot | None:
        validate_document_path(path)
        try:
            pool = await get_asyncpg_pool()
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    'SELECT path, data, version FROM documents WHERE path = $1', path
                )
        except _UNAVAILABLE_ERRORS as e:
            raise StoreUnavailableError(f'Document store unavailable: {e}') from e
        if row is None:
            return None
        return DocumentSnapshot(path=row['path'], data=_decode(row['data']), version=row['version'])

    async def query(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        with self.tracer.start_as_current_span(
            'document_store.query', attributes={'collection': collection}
        ):
            params = _SqlParams(collection)
            sql = 'SELECT path, data, version FROM documents WHERE collection = $1'
            if where:
                sql += f' AND data @> {params.add(orjson.dumps(dict(where)).decode())}::jsonb'
            if order_by is not None:
                direction = 'DESC' if descending else 'ASC'
                sql += f' ORDER BY data->({params.add(order_by)}::text) {direction} NULLS LAST'
            if limit is not None:
                sql += f' LIMIT {params.add(limit)}'
            try:
                pool = await get_asyncpg_pool()
                async with pool.acquire() as conn:
                    rows = await conn.fetch(sql, *params.values)
            except _UNAVAILABLE_ERRORS as e:
                raise StoreUnavailableError(f'Document store unavailable: {e}') from e
            return [
                DocumentSnapshot(path=row['path'], data=_decode(row['data']), version=row['version'])
                for row in rows
            ]

    async def publish_changes(self, changes: list[DocumentChange]) -> None:
        """Best effort: the commit already happened, a lost notification only delays watchers."""
        try:
            client = redis_client.get_client()
            for change in changes:
                payload = {'path': change.path, 'collection': change.collection, 'data': change.data}
                await client.publish(change_channel(change.collection), orjson.dumps(payload))
        except Exception as e:
            Logger.base.warning(f'⚠️ [STORE] change publish failed: {e}')

    @asynccontextmanager
    async def watch(
        self, collection: str, *, where: Mapping[str, Any] | None = None
    ) -> AsyncIterator[MemoryObjectReceiveStream[DocumentChange]]:
        send_stream, receive_stream = create_memory_object_stream[DocumentChange](
            max_buffer_size=self.WATCH_BUFFER_SIZE
        )
        client = redis_client.create_pubsub_client()
        pubsub = client.pubsub()
        await pubsub.subscribe(change_channel(collection))
        Logger.base.debug(f'📡 [STORE] watch {collection}')

        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._pump, pubsub, send_stream, where)
                try:
                    yield receive_stream
                finally:
                    tg.cancel_scope.cancel()
        finally:
            await pubsub.unsubscribe()
            await pubsub.aclose()
            await client.aclose()
            await receive_stream.aclose()

    async def _pump(
        self,
        pubsub: Any,
        send_stream: MemoryObjectSendStream[DocumentChange],
        where: Mapping[str, Any] | None,
    ) -> None:
        async with send_stream:
            async for message in pubsub.listen():
                if message.get('type') != 'message':
                    continue
                payload = orjson.loads(message['data'])
                change = DocumentChange(
                    path=payload['path'], collection=payload['collection'], data=payload['data']
                )
                if not matches(change.data, where):
                    continue
                try:
                    send_stream.send_nowait(change)
                except WouldBlock:
                    Logger.base.warning(f'⚠️ [STORE] watcher full, dropping change {change.path}')
