"""
Schema of the `documents` table backing PostgresDocumentStore.

One row per document; `collection` is the path without its last segment so
collection queries and subcollections (users/{uid}/trips) share one table.
"""

from sqlalchemy import BigInteger, Column, DateTime, Index, MetaData, Table, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import create_async_engine

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


metadata = MetaData()

documents_table = Table(
    'documents',
    metadata,
    Column('path', Text, primary_key=True),
    Column('collection', Text, nullable=False),
    Column('data', JSONB, nullable=False),
    Column('version', BigInteger, nullable=False, server_default='1'),
    Column('created_at', DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column('updated_at', DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index('ix_documents_collection', 'collection'),
    Index('ix_documents_data', 'data', postgresql_using='gin'),
)


async def create_document_tables() -> None:
    engine = create_async_engine(settings.DATABASE_URL_ASYNC)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        Logger.base.info('✅ [Schema] documents table ready')
    finally:
        await engine.dispose()
