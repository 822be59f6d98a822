"""Vote store backed by a single SQL table.

Table `votes`:
- id: auto-increment primary key
- nickname: voter nickname, unique
- votes: accumulated vote count
- timestamp: time of the most recent accumulation
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, func, select, text
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.sql.dml import Insert

from .models import PersistResult, RowOutcome, VoteEntry, VoterRecord

logger = logging.getLogger(__name__)

metadata = MetaData()

votes_table = Table(
    "votes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("nickname", String(255), nullable=False, unique=True),
    Column("votes", Integer, nullable=False, server_default=text("0")),
    Column("timestamp", DateTime, server_default=func.now()),
)


class StoreError(Exception):
    """Raised when the vote store cannot be read or written."""


class SchemaError(StoreError):
    """Raised when the votes table cannot be created."""


class VoteStore:
    """Owns the lifecycle of every persisted vote entry."""

    def __init__(self, engine: AsyncEngine, *, write_concurrency: int = 10) -> None:
        self._engine = engine
        self._write_slots = asyncio.Semaphore(max(1, write_concurrency))

    async def ensure_schema(self) -> None:
        """Create the votes table if it does not exist. Safe to call repeatedly."""

        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise SchemaError(f"Could not create votes table: {e}") from e

    async def list_entries(self) -> list[VoteEntry]:
        """Return every stored vote entry."""

        stmt = select(votes_table.c.nickname, votes_table.c.votes, votes_table.c.timestamp)
        try:
            async with self._engine.connect() as conn:
                rows = (await conn.execute(stmt)).all()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Could not read votes: {e}") from e
        return [
            VoteEntry(nickname=row.nickname, vote_count=row.votes, last_updated=row.timestamp)
            for row in rows
        ]

    async def list_nicknames(self) -> set[str]:
        """Return the nickname of every stored entry."""

        try:
            async with self._engine.connect() as conn:
                rows = (await conn.execute(select(votes_table.c.nickname))).all()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Could not read stored nicknames: {e}") from e
        return {row.nickname for row in rows}

    def _upsert_statement(self, record: VoterRecord) -> Insert:
        # accumulated counts never go down
        if record.votes < 0:
            raise StoreError(f"Negative vote count {record.votes} for {record.nickname!r}")
        values = {"nickname": record.nickname, "votes": record.votes}
        dialect = self._engine.dialect.name

        if dialect == "mysql":
            stmt = mysql_insert(votes_table).values(**values)
            return stmt.on_duplicate_key_update(
                votes=votes_table.c.votes + stmt.inserted.votes,
                timestamp=func.now(),
            )

        if dialect == "postgresql":
            stmt = pg_insert(votes_table).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite_insert(votes_table).values(**values)
        else:
            raise StoreError(f"Unsupported database dialect: {dialect}")

        return stmt.on_conflict_do_update(
            index_elements=[votes_table.c.nickname],
            set_={
                "votes": votes_table.c.votes + stmt.excluded.votes,
                "timestamp": func.now(),
            },
        )

    async def _upsert_one(self, record: VoterRecord) -> RowOutcome:
        async with self._write_slots:
            try:
                # One transaction per row; the batch as a whole is not atomic.
                async with self._engine.begin() as conn:
                    await conn.execute(self._upsert_statement(record))
            except (SQLAlchemyError, OSError, StoreError) as e:
                logger.error("Error saving votes for %r: %s", record.nickname, e)
                return RowOutcome(record=record, error=e)
        return RowOutcome(record=record)

    async def upsert_batch(self, records: Iterable[VoterRecord]) -> PersistResult:
        """
        Insert each record, or add its votes to the stored count when the
        nickname already exists.

        Rows are written concurrently and independently; a failed row is
        reported in the result and does not affect the others.
        """
        records = list(records)
        if not records:
            return PersistResult()

        outcomes = await asyncio.gather(*(self._upsert_one(r) for r in records))
        result = PersistResult(outcomes=list(outcomes))
        if result.all_ok:
            logger.info("Saved %d vote row(s) to the database", len(outcomes))
        else:
            logger.warning(
                "Saved %d of %d vote row(s); %d failed",
                len(result.written), len(outcomes), len(result.failed),
            )
        return result
