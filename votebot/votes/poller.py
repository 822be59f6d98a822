"""Poll cycle across every configured ranking source.

A cycle:
1) Snapshot the stored nicknames once
2) Fetch each source in order; a failing source contributes nothing
3) Keep the voters whose nickname is not in the snapshot
4) Upsert the whole novel set in one batch
5) Return the novel set (the delta of this cycle, not the leaderboard)

Overlapping cycles each take their own snapshot and can count the same new
nickname twice unless `serialize_cycles` is set.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from votebot.sources.client import FetchResult
from votebot.sources.errors import FetchFailure

from .dedup import novel, novel_unique
from .models import PersistResult, VoterRecord
from .store import StoreError

logger = logging.getLogger(__name__)


class VoteSource(Protocol):
    async def fetch(self, url: str) -> FetchResult:
        ...


class NicknameStore(Protocol):
    async def list_nicknames(self) -> set[str]:
        ...

    async def upsert_batch(self, records: Iterable[VoterRecord]) -> PersistResult:
        ...


@dataclass
class CycleReport:
    """
    Everything one cycle observed.

    `records` is what the user sees. The other fields tell an empty result
    caused by failures apart from a genuinely quiet cycle.
    """

    records: list[VoterRecord] = field(default_factory=list)
    failed_sources: dict[str, FetchFailure] = field(default_factory=dict)
    snapshot_error: StoreError | None = None
    persist: PersistResult = field(default_factory=PersistResult)

    @property
    def clean(self) -> bool:
        return not self.failed_sources and self.snapshot_error is None and self.persist.all_ok


class Poller:
    def __init__(
        self,
        store: NicknameStore,
        client: VoteSource,
        source_urls: Iterable[str],
        *,
        dedupe_within_cycle: bool = False,
        serialize_cycles: bool = False,
    ) -> None:
        self._store = store
        self._client = client
        self.source_urls = list(source_urls)
        self._dedupe_within_cycle = dedupe_within_cycle
        self._cycle_lock = asyncio.Lock() if serialize_cycles else None

    async def _snapshot(self, report: CycleReport) -> set[str]:
        try:
            known = await self._store.list_nicknames()
        except StoreError as e:
            # Same as an empty table: every fetched voter will look new.
            logger.error("Error fetching stored votes: %s", e)
            report.snapshot_error = e
            return set()
        logger.info("Stored nicknames retrieved: %d", len(known))
        return known

    async def _cycle(self) -> CycleReport:
        report = CycleReport()
        known = await self._snapshot(report)

        for url in self.source_urls:
            logger.info("Polling source: %s", url)
            result = await self._client.fetch(url)
            if not result.ok:
                report.failed_sources[url] = result.failure
                continue

            if self._dedupe_within_cycle:
                fresh = novel_unique(result.voters, known | {r.nickname for r in report.records})
            else:
                fresh = novel(result.voters, known)
            logger.info("Source %s: %d new vote(s)", url, len(fresh))
            report.records.extend(fresh)

        if report.records:
            logger.info("New votes to save: %s", report.records)
            report.persist = await self._store.upsert_batch(report.records)
        else:
            logger.info("No new votes to save")

        logger.info(
            "Cycle finished: %d new vote(s), %d failed source(s)",
            len(report.records), len(report.failed_sources),
        )
        return report

    async def run_cycle(self) -> CycleReport:
        """Run one poll cycle and return its full report."""
        lock = self._cycle_lock or contextlib.nullcontext()
        async with lock:
            return await self._cycle()

    async def poll(self) -> list[VoterRecord]:
        """Run one poll cycle and return the newly discovered votes."""
        return (await self.run_cycle()).records
