"""
Embedded transactional key-value store.

Named buckets hold byte keys and byte values. Keys iterate in bytewise
order. Every operation runs inside a read or write transaction; write
transactions are serialized per store and rolled back as a whole when the
block raises.

Usage:
    store = KeyValueStore("sqlite+aiosqlite:///frame.db")
    await store.create_schema()

    async with store.write() as tx:
        images = tx.bucket("images")
        next_id = await images.next_sequence()
        await images.put(encode_key(next_id), b"...")
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple
import asyncio
import logging

from fastapi import Request
from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from app.database import Base, WRITE_OPTION, create_kv_engine
from app.models import BucketEntry, BucketSequence

entries = BucketEntry.__table__
sequences = BucketSequence.__table__

logger = logging.getLogger(__name__)


class Bucket:
    """A named partition of the store, bound to one transaction."""

    def __init__(self, conn: AsyncConnection, name: str, writable: bool):
        self._conn = conn
        self.name = name
        self._writable = writable

    def _check_writable(self) -> None:
        if not self._writable:
            raise RuntimeError(f"Bucket '{self.name}' was opened in a read-only transaction")

    async def get(self, key: bytes) -> Optional[bytes]:
        result = await self._conn.execute(
            select(entries.c.value).where(
                entries.c.bucket == self.name, entries.c.key == key
            )
        )
        return result.scalar_one_or_none()

    async def put(self, key: bytes, value: bytes) -> None:
        self._check_writable()
        stmt = sqlite_insert(entries).values(bucket=self.name, key=key, value=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[entries.c.bucket, entries.c.key],
            set_={"value": stmt.excluded.value},
        )
        await self._conn.execute(stmt)

    async def delete(self, key: bytes) -> None:
        self._check_writable()
        await self._conn.execute(
            delete(entries).where(
                entries.c.bucket == self.name, entries.c.key == key
            )
        )

    async def items(self) -> List[Tuple[bytes, bytes]]:
        """All (key, value) pairs in key order."""
        result = await self._conn.execute(
            select(entries.c.key, entries.c.value)
            .where(entries.c.bucket == self.name)
            .order_by(entries.c.key.asc())
        )
        return [(key, value) for key, value in result]

    async def first(self) -> Optional[Tuple[bytes, bytes]]:
        result = await self._conn.execute(
            select(entries.c.key, entries.c.value)
            .where(entries.c.bucket == self.name)
            .order_by(entries.c.key.asc())
            .limit(1)
        )
        row = result.first()
        return (row[0], row[1]) if row is not None else None

    async def count(self) -> int:
        result = await self._conn.execute(
            select(func.count()).select_from(entries).where(entries.c.bucket == self.name)
        )
        return result.scalar_one()

    async def is_empty(self) -> bool:
        return await self.first() is None

    async def clear(self) -> None:
        self._check_writable()
        await self._conn.execute(delete(entries).where(entries.c.bucket == self.name))

    async def sequence(self) -> int:
        """Current value of the bucket's sequence (0 if never used)."""
        result = await self._conn.execute(
            select(sequences.c.value).where(sequences.c.bucket == self.name)
        )
        return result.scalar_one_or_none() or 0

    async def next_sequence(self) -> int:
        """Increment the bucket's sequence and return the new value."""
        self._check_writable()
        current = await self._conn.execute(
            select(sequences.c.value).where(sequences.c.bucket == self.name)
        )
        value = current.scalar_one_or_none()
        if value is None:
            await self._conn.execute(
                sqlite_insert(sequences).values(bucket=self.name, value=1)
            )
            return 1
        await self._conn.execute(
            update(sequences)
            .where(sequences.c.bucket == self.name)
            .values(value=value + 1)
        )
        return value + 1


class Transaction:
    """Gives access to buckets inside one read or write transaction."""

    def __init__(self, conn: AsyncConnection, writable: bool):
        self._conn = conn
        self.writable = writable

    def bucket(self, name: str) -> Bucket:
        return Bucket(self._conn, name, self.writable)


class KeyValueStore:
    """
    Handle to one store file.

    Each component that persists state receives this handle through its
    constructor; nothing in the package keeps a global store.
    """

    def __init__(self, url: str, timeout: float = 15.0):
        self.url = url
        self.engine = create_kv_engine(url, timeout=timeout)
        self._write_lock = asyncio.Lock()

    async def create_schema(self) -> None:
        """Create the bucket tables if they do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Key-value store schema ready")

    @asynccontextmanager
    async def read(self) -> AsyncIterator[Transaction]:
        """Read-only transaction with a consistent snapshot across buckets."""
        async with self.engine.connect() as conn:
            async with conn.begin():
                yield Transaction(conn, writable=False)

    @asynccontextmanager
    async def write(self) -> AsyncIterator[Transaction]:
        """
        Read-write transaction.
        Commits when the block exits normally, rolls back when it raises.
        """
        async with self._write_lock:
            async with self.engine.connect() as conn:
                conn = await conn.execution_options(**{WRITE_OPTION: True})
                async with conn.begin():
                    yield Transaction(conn, writable=True)

    async def ping(self) -> bool:
        async with self.read() as tx:
            await tx.bucket("status").first()
        return True

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Key-value store closed")


def get_store(request: Request) -> KeyValueStore:
    """
    FastAPI dependency returning the store opened at startup.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(store: KeyValueStore = Depends(get_store)):
            ...
    """
    return request.app.state.store
