from __future__ import annotations

from typing import AbstractSet, Iterable

from .models import VoterRecord


def novel(records: Iterable[VoterRecord], known_nicknames: AbstractSet[str]) -> list[VoterRecord]:
    """
    Keep the records whose nickname is not in the known set.

    Records sharing a nickname inside `records` are all kept; only the
    snapshot is consulted.
    """
    return [r for r in records if r.nickname not in known_nicknames]


def novel_unique(records: Iterable[VoterRecord], known_nicknames: AbstractSet[str]) -> list[VoterRecord]:
    """Like novel(), but only the first record of each nickname is kept."""
    taken = set(known_nicknames)
    fresh: list[VoterRecord] = []
    for r in records:
        if r.nickname in taken:
            continue
        taken.add(r.nickname)
        fresh.append(r)
    return fresh
