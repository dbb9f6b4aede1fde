"""
Key-value store tests: buckets, key ordering, sequences and transactions.
"""

import pytest

from app.store import KeyValueStore
from app.utils.codec import decode_key, encode_key


class TestBuckets:

    async def test_put_get_delete(self, store):
        async with store.write() as tx:
            bucket = tx.bucket("scratch")
            await bucket.put(b"a", b"1")
            await bucket.put(b"a", b"2")

        async with store.read() as tx:
            assert await tx.bucket("scratch").get(b"a") == b"2"
            assert await tx.bucket("other").get(b"a") is None

        async with store.write() as tx:
            await tx.bucket("scratch").delete(b"a")

        async with store.read() as tx:
            assert await tx.bucket("scratch").is_empty()

    async def test_big_endian_keys_iterate_numerically(self, store):
        async with store.write() as tx:
            bucket = tx.bucket("scratch")
            for value in (256, 2, 1, 65536, 10):
                await bucket.put(encode_key(value), b"")

        async with store.read() as tx:
            keys = [decode_key(key) for key, _ in await tx.bucket("scratch").items()]

        assert keys == [1, 2, 10, 256, 65536]

    async def test_clear_only_touches_one_bucket(self, store):
        async with store.write() as tx:
            await tx.bucket("left").put(b"k", b"v")
            await tx.bucket("right").put(b"k", b"v")
            await tx.bucket("left").clear()

        async with store.read() as tx:
            assert await tx.bucket("left").count() == 0
            assert await tx.bucket("right").count() == 1


class TestSequences:

    async def test_sequence_is_monotonic_per_bucket(self, store):
        async with store.write() as tx:
            first = await tx.bucket("seq-a").next_sequence()
            second = await tx.bucket("seq-a").next_sequence()
            other = await tx.bucket("seq-b").next_sequence()

        assert (first, second, other) == (1, 2, 1)

        async with store.read() as tx:
            assert await tx.bucket("seq-a").sequence() == 2
            assert await tx.bucket("unused").sequence() == 0


class TestTransactions:

    async def test_failed_write_rolls_back(self, store):
        with pytest.raises(RuntimeError, match="boom"):
            async with store.write() as tx:
                await tx.bucket("scratch").put(b"k", b"v")
                await tx.bucket("scratch").next_sequence()
                raise RuntimeError("boom")

        async with store.read() as tx:
            assert await tx.bucket("scratch").get(b"k") is None
            assert await tx.bucket("scratch").sequence() == 0

        # The write lock was released
        async with store.write() as tx:
            await tx.bucket("scratch").put(b"k", b"v")

    async def test_read_transaction_rejects_writes(self, store):
        async with store.read() as tx:
            with pytest.raises(RuntimeError, match="read-only"):
                await tx.bucket("scratch").put(b"k", b"v")

    async def test_ping(self, store):
        assert await store.ping() is True


class TestDatabaseUrl:

    @pytest.mark.parametrize("url", [
        "",
        "postgresql://localhost/frame",
        "sqlite+aiosqlite:///:memory:",
    ])
    def test_rejects_unusable_urls(self, url):
        with pytest.raises(ValueError, match="Invalid DATABASE_URL"):
            KeyValueStore(url)
