from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class VoterRecord:
    """One voter as reported by a ranking source."""

    nickname: str
    votes: int


@dataclass(frozen=True)
class VoteEntry:
    """One row of the votes table."""

    nickname: str
    vote_count: int
    last_updated: datetime | None = None


@dataclass(frozen=True)
class RowOutcome:
    record: VoterRecord
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PersistResult:
    """
    Per-row outcome of a batch upsert.

    The batch is not transactional: some rows may be written while others fail.
    """

    outcomes: list[RowOutcome] = field(default_factory=list)

    @property
    def written(self) -> list[VoterRecord]:
        return [o.record for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[RowOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def all_ok(self) -> bool:
        return not self.failed
