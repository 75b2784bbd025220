"""
This module provides the SQLite-specific implementations of the
`ReadModelStore` and `SnapshotStore` protocols.

Every handle shares one dedicated write connection, guarded by a lock and
committed per operation, and borrows read connections from a pool. Rows are
stored serialized and re-validated on every read, so callers always receive
fresh objects that cannot reach stored state.
"""
from typing import Any, AsyncIterator, List, Type, TypeVar
from contextlib import asynccontextmanager
from datetime import datetime
import asyncio
import logging
import zlib

import aiosqlite
from pydantic import BaseModel, TypeAdapter

from ...models import Snapshot
from ...protocols import ReadModelStore, SnapshotStore

T = TypeVar("T", bound=BaseModel)
S = TypeVar("S")


class SQLiteHandle:
    def __init__(
        self,
        namespace: str,
        write_conn: aiosqlite.Connection,
        write_lock: asyncio.Lock,
        read_pool: asyncio.Queue,
    ):
        self.namespace = namespace
        self.write_conn = write_conn
        self.write_lock = write_lock
        self.read_pool = read_pool

    @asynccontextmanager
    async def _write(self) -> AsyncIterator[aiosqlite.Connection]:
        """Runs one write transaction on the shared write connection."""
        async with self.write_lock:
            try:
                yield self.write_conn
                await self.write_conn.commit()
            except Exception as e:
                await self.write_conn.rollback()
                logging.error(f"Failed to write to SQLite ({self.namespace}): {e}")
                raise

    @asynccontextmanager
    async def _read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Provides a connection from the read pool."""
        conn = await self.read_pool.get()
        try:
            yield conn
        finally:
            await self.read_pool.put(conn)


class SQLiteReadModelStore(SQLiteHandle, ReadModelStore[T]):
    """
    Stores read models of one pydantic type as JSON rows. `namespace` partitions
    the shared table, normally one namespace per projection.
    """

    def __init__(
        self,
        namespace: str,
        model_cls: Type[T],
        *,
        write_conn: aiosqlite.Connection,
        write_lock: asyncio.Lock,
        read_pool: asyncio.Queue,
        id_field: str = "id",
    ):
        super().__init__(namespace, write_conn, write_lock, read_pool)
        self.model_cls = model_cls
        self.id_field = id_field

    async def save(self, model: T) -> None:
        key = str(getattr(model, self.id_field))
        async with self._write() as conn:
            await conn.execute(
                "INSERT OR REPLACE INTO read_models (namespace, id, data) VALUES (?, ?, ?)",
                (self.namespace, key, model.model_dump_json()),
            )

    async def find_by_id(self, id: str) -> T | None:
        async with self._read() as conn:
            async with conn.execute(
                "SELECT data FROM read_models WHERE namespace = ? AND id = ?",
                (self.namespace, str(id)),
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            return None
        return self.model_cls.model_validate_json(row[0])

    async def find_all(self) -> List[T]:
        async with self._read() as conn:
            async with conn.execute(
                "SELECT data FROM read_models WHERE namespace = ?", (self.namespace,)
            ) as cursor:
                rows = await cursor.fetchall()
        return [self.model_cls.model_validate_json(row[0]) for row in rows]

    async def delete(self, id: str) -> None:
        async with self._write() as conn:
            await conn.execute(
                "DELETE FROM read_models WHERE namespace = ? AND id = ?",
                (self.namespace, str(id)),
            )

    async def clear(self) -> None:
        async with self._write() as conn:
            await conn.execute(
                "DELETE FROM read_models WHERE namespace = ?", (self.namespace,)
            )

    async def size(self) -> int:
        async with self._read() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM read_models WHERE namespace = ?", (self.namespace,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0]


class SQLiteSnapshotStore(SQLiteHandle, SnapshotStore[S]):
    """
    Stores snapshots keyed by (aggregate_id, version). State is serialized with
    a pydantic `TypeAdapter` for `state_type` and zlib-compressed.
    """

    def __init__(
        self,
        namespace: str,
        *,
        write_conn: aiosqlite.Connection,
        write_lock: asyncio.Lock,
        read_pool: asyncio.Queue,
        state_type: Any = Any,
    ):
        super().__init__(namespace, write_conn, write_lock, read_pool)
        self._state_adapter = TypeAdapter(state_type)

    def _to_snapshot(self, row) -> Snapshot[S]:
        aggregate_id, version, state, taken_at = row
        return Snapshot(
            aggregate_id=aggregate_id,
            version=version,
            state=self._state_adapter.validate_json(zlib.decompress(state)),
            taken_at=datetime.fromisoformat(taken_at),
        )

    async def save(self, snapshot: Snapshot[S]) -> None:
        state = zlib.compress(self._state_adapter.dump_json(snapshot.state))
        async with self._write() as conn:
            await conn.execute(
                "INSERT OR REPLACE INTO snapshots (namespace, aggregate_id, version, state, taken_at) VALUES (?, ?, ?, ?, ?)",
                (
                    self.namespace,
                    snapshot.aggregate_id,
                    snapshot.version,
                    state,
                    snapshot.taken_at.isoformat(),
                ),
            )

    async def find_latest(self, aggregate_id: str) -> Snapshot[S] | None:
        async with self._read() as conn:
            async with conn.execute(
                "SELECT aggregate_id, version, state, taken_at FROM snapshots WHERE namespace = ? AND aggregate_id = ? ORDER BY version DESC LIMIT 1",
                (self.namespace, aggregate_id),
            ) as cursor:
                row = await cursor.fetchone()
        return self._to_snapshot(row) if row else None

    async def find_by_version(
        self, aggregate_id: str, version: int
    ) -> Snapshot[S] | None:
        async with self._read() as conn:
            async with conn.execute(
                "SELECT aggregate_id, version, state, taken_at FROM snapshots WHERE namespace = ? AND aggregate_id = ? AND version = ?",
                (self.namespace, aggregate_id, version),
            ) as cursor:
                row = await cursor.fetchone()
        return self._to_snapshot(row) if row else None

    async def delete(self, aggregate_id: str) -> None:
        async with self._write() as conn:
            await conn.execute(
                "DELETE FROM snapshots WHERE namespace = ? AND aggregate_id = ?",
                (self.namespace, aggregate_id),
            )

    async def size(self) -> int:
        async with self._read() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM snapshots WHERE namespace = ?", (self.namespace,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0]
