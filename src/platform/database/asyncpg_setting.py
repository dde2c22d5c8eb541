import asyncio

import asyncpg

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


# Global connection pools per event loop
asyncpg_pools: dict[int, asyncpg.Pool] = {}


async def _init_connection(conn: asyncpg.Connection) -> None:
    # Server timestamps are rendered into JSONB, keep them in one offset so they sort as text
    await conn.execute("SET TIME ZONE 'UTC'")


async def get_asyncpg_pool() -> asyncpg.Pool:
    current_loop = asyncio.get_running_loop()
    loop_id = id(current_loop)

    if loop_id in asyncpg_pools:
        return asyncpg_pools[loop_id]

    dsn = settings.DATABASE_URL_ASYNC.replace('postgresql+asyncpg://', 'postgresql://')
    pool = await asyncpg.create_pool(
        dsn,
        min_size=settings.ASYNCPG_POOL_MIN_SIZE,
        max_size=settings.ASYNCPG_POOL_MAX_SIZE,
        command_timeout=settings.ASYNCPG_POOL_COMMAND_TIMEOUT,
        max_inactive_connection_lifetime=settings.ASYNCPG_POOL_MAX_INACTIVE_LIFETIME,
        timeout=settings.ASYNCPG_POOL_TIMEOUT,
        init=_init_connection,
    )
    Logger.base.info(
        f'📊 [Pool] created size={pool.get_size()} '
        f'min={pool.get_min_size()} max={pool.get_max_size()}'
    )

    asyncpg_pools[loop_id] = pool
    return pool


async def close_asyncpg_pool() -> None:
    """Close the pool bound to the current event loop"""
    loop_id = id(asyncio.get_running_loop())
    pool = asyncpg_pools.pop(loop_id, None)
    if pool is not None:
        await pool.close()


async def close_all_asyncpg_pools() -> None:
    """Only call during application shutdown."""
    for pool in list(asyncpg_pools.values()):
        try:
            await pool.close()
        except Exception as e:
            Logger.base.warning(f'⚠️ [Pool] close failed: {e}')
    asyncpg_pools.clear()
