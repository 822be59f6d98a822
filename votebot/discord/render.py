from __future__ import annotations

from typing import Iterable

from votebot.votes.models import VoterRecord

DISCORD_MESSAGE_LIMIT = 2000
NO_NEW_VOTES = "No new votes found."
HEADER = "Here are the latest votes:"


def format_vote_line(record: VoterRecord) -> str:
    return f"User: {record.nickname} | Votes: {record.votes}"


def render_votes(records: Iterable[VoterRecord]) -> str:
    """
    One line per new vote, or the generic empty message.

    An empty result looks the same whether nothing was new or every source
    failed.
    """
    lines = [format_vote_line(r) for r in records]
    if not lines:
        return NO_NEW_VOTES
    return "\n".join([HEADER, *lines])


def split_message(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> list[str]:
    """Split text into chunks no longer than `limit`, preferring line breaks."""
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current or not chunks:
        chunks.append(current)
    return chunks
