import os
import tempfile
import unittest

from sqlalchemy.ext.asyncio import create_async_engine

from votebot.votes.models import VoterRecord
from votebot.votes.store import SchemaError, StoreError, VoteStore


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    """Runs against a throwaway SQLite file through aiosqlite."""

    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        path = os.path.join(self._tmp.name, "votes.db")
        self.engine = create_async_engine(f"sqlite+aiosqlite:///{path}")
        self.store = VoteStore(self.engine, write_concurrency=1)
        await self.store.ensure_schema()

    async def asyncTearDown(self):
        await self.engine.dispose()
        self._tmp.cleanup()

    async def counts(self) -> dict[str, int]:
        return {e.nickname: e.vote_count for e in await self.store.list_entries()}


class TestVoteStore(StoreTestCase):
    async def test_ensure_schema_is_idempotent(self):
        await self.store.ensure_schema()
        await self.store.ensure_schema()
        self.assertEqual(await self.store.list_entries(), [])

    async def test_insert_new_nicknames(self):
        result = await self.store.upsert_batch([VoterRecord("alice", 3), VoterRecord("bob", 1)])

        self.assertTrue(result.all_ok)
        self.assertEqual(len(result.written), 2)
        self.assertEqual(await self.counts(), {"alice": 3, "bob": 1})
        self.assertEqual(await self.store.list_nicknames(), {"alice", "bob"})

    async def test_accumulates_on_conflict(self):
        await self.store.upsert_batch([VoterRecord("alice", 3)])
        await self.store.upsert_batch([VoterRecord("alice", 2)])
        self.assertEqual(await self.counts(), {"alice": 5})

    async def test_one_row_per_nickname(self):
        for votes in (1, 2, 3):
            await self.store.upsert_batch([VoterRecord("alice", votes), VoterRecord("bob", 1)])

        entries = await self.store.list_entries()
        nicknames = [e.nickname for e in entries]
        self.assertEqual(sorted(nicknames), ["alice", "bob"])
        self.assertEqual(await self.counts(), {"alice": 6, "bob": 3})

    async def test_same_nickname_twice_in_one_batch_accumulates(self):
        result = await self.store.upsert_batch([VoterRecord("x", 3), VoterRecord("x", 2)])
        self.assertTrue(result.all_ok)
        self.assertEqual(await self.counts(), {"x": 5})

    async def test_entries_carry_timestamp(self):
        await self.store.upsert_batch([VoterRecord("alice", 1)])
        (entry,) = await self.store.list_entries()
        self.assertIsNotNone(entry.last_updated)

    async def test_empty_batch(self):
        result = await self.store.upsert_batch([])
        self.assertEqual(result.outcomes, [])
        self.assertTrue(result.all_ok)

    async def test_failed_row_does_not_block_others(self):
        # nickname is NOT NULL; the database rejects this row only
        bad = VoterRecord(None, 4)
        result = await self.store.upsert_batch([VoterRecord("alice", 1), bad, VoterRecord("bob", 2)])

        self.assertFalse(result.all_ok)
        self.assertEqual([o.record for o in result.failed], [bad])
        self.assertIsNotNone(result.failed[0].error)
        self.assertEqual(result.written, [VoterRecord("alice", 1), VoterRecord("bob", 2)])
        self.assertEqual(await self.counts(), {"alice": 1, "bob": 2})


    async def test_negative_votes_never_lower_a_count(self):
        await self.store.upsert_batch([VoterRecord("x", 5)])

        result = await self.store.upsert_batch([VoterRecord("x", -4), VoterRecord("n", -3)])

        self.assertEqual(len(result.failed), 2)
        self.assertEqual(await self.counts(), {"x": 5})


class TestConcurrentWrites(StoreTestCase):
    """Same checks with the default write concurrency used in production."""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.store = VoteStore(self.engine)

    async def test_repeated_nickname_in_one_batch_accumulates(self):
        result = await self.store.upsert_batch(
            [VoterRecord("x", 3), VoterRecord("x", 2), VoterRecord("y", 1)]
        )

        self.assertTrue(result.all_ok)
        self.assertEqual(await self.counts(), {"x": 5, "y": 1})

    async def test_many_distinct_rows(self):
        records = [VoterRecord(f"voter{i:02d}", i + 1) for i in range(25)]

        result = await self.store.upsert_batch(records)

        self.assertTrue(result.all_ok)
        self.assertEqual(await self.counts(), {r.nickname: r.votes for r in records})


class TestBrokenDatabase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        # a directory that does not exist cannot hold the database file
        self.engine = create_async_engine("sqlite+aiosqlite:////nonexistent-dir/for/votes.db")
        self.store = VoteStore(self.engine)

    async def asyncTearDown(self):
        await self.engine.dispose()

    async def test_ensure_schema_raises_schema_error(self):
        with self.assertRaises(SchemaError):
            await self.store.ensure_schema()

    async def test_reads_raise_store_error(self):
        with self.assertRaises(StoreError):
            await self.store.list_nicknames()
        with self.assertRaises(StoreError):
            await self.store.list_entries()

    async def test_writes_report_every_row_failed(self):
        result = await self.store.upsert_batch([VoterRecord("a", 1), VoterRecord("b", 2)])
        self.assertEqual(len(result.failed), 2)
        self.assertEqual(result.written, [])


if __name__ == "__main__":
    unittest.main()
