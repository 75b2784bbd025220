from typing import Any, AsyncIterator, List, Type, TypeVar
from contextlib import asynccontextmanager
import asyncio
import logging

import aiosqlite
from pydantic import BaseModel

from .handle import SQLiteReadModelStore, SQLiteSnapshotStore

T = TypeVar("T", bound=BaseModel)


async def _create_schema(conn: aiosqlite.Connection):
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS read_models (
            namespace TEXT NOT NULL,
            id TEXT NOT NULL,
            data TEXT NOT NULL,
            PRIMARY KEY (namespace, id)
        )
    """
    )
    # Several snapshots per aggregate may coexist; the composite key keeps
    # `find_latest` and `find_by_version` on the primary key index.
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS snapshots (
            namespace TEXT NOT NULL,
            aggregate_id TEXT NOT NULL,
            version INTEGER NOT NULL,
            state BLOB NOT NULL,
            taken_at TEXT NOT NULL,
            PRIMARY KEY (namespace, aggregate_id, version)
        )
    """
    )
    await conn.commit()


class SQLiteStores:
    """
    Hands out SQLite-backed stores that share one write connection and one
    read pool. Obtain an instance from `sqlite_store_factory`.
    """

    def __init__(
        self,
        write_conn: aiosqlite.Connection,
        write_lock: asyncio.Lock,
        read_pool: asyncio.Queue,
    ):
        self.write_conn = write_conn
        self.write_lock = write_lock
        self.read_pool = read_pool

    def read_model_store(
        self, namespace: str, model_cls: Type[T], *, id_field: str = "id"
    ) -> SQLiteReadModelStore[T]:
        return SQLiteReadModelStore(
            namespace,
            model_cls,
            write_conn=self.write_conn,
            write_lock=self.write_lock,
            read_pool=self.read_pool,
            id_field=id_field,
        )

    def snapshot_store(
        self, namespace: str = "default", *, state_type: Any = Any
    ) -> SQLiteSnapshotStore:
        return SQLiteSnapshotStore(
            namespace,
            write_conn=self.write_conn,
            write_lock=self.write_lock,
            read_pool=self.read_pool,
            state_type=state_type,
        )


@asynccontextmanager
async def sqlite_store_factory(
    db_path: str,
    *,
    cache_size_kib: int = -16384,
    pool_size: int = 4,
) -> AsyncIterator[SQLiteStores]:
    """
    Opens the database resources for SQLite-backed stores and closes them on
    exit. A file database gets a dedicated write connection plus a pool of
    read-only connections; `":memory:"` uses a single connection for both,
    since a private in-memory database is only visible to the connection
    that created it.
    """
    if not db_path:
        raise ValueError("`db_path` must be provided in the configuration.")
    if pool_size <= 0:
        raise ValueError(f"pool_size must be positive, got {pool_size}")

    is_memory_db = db_path == ":memory:"
    write_conn = await aiosqlite.connect(db_path)
    read_connections: List[aiosqlite.Connection] = []
    try:
        if not is_memory_db:
            await write_conn.execute("PRAGMA journal_mode=WAL;")
            await write_conn.execute("PRAGMA synchronous = NORMAL;")
        await write_conn.execute(f"PRAGMA cache_size = {cache_size_kib};")
        await write_conn.execute("PRAGMA busy_timeout = 5000;")
        await _create_schema(write_conn)

        read_pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        if is_memory_db:
            await read_pool.put(write_conn)
        else:
            for _ in range(pool_size):
                conn = await aiosqlite.connect(f"file:{db_path}?mode=ro", uri=True)
                read_connections.append(conn)
                await conn.execute(f"PRAGMA cache_size = {cache_size_kib};")
                await conn.execute("PRAGMA busy_timeout = 5000;")
                await read_pool.put(conn)

        logging.info(f"SQLite stores opened for {db_path}")
        yield SQLiteStores(write_conn, asyncio.Lock(), read_pool)
    finally:
        await asyncio.gather(*(conn.close() for conn in read_connections))
        await write_conn.close()
        logging.info(f"SQLite stores closed for {db_path}")
