"""
votebot/sources/client.py

Reads the current voter list of one ranking source.

Expected payload:
  {"voters": [{"nickname": "...", "votes": 3}, ...]}

Every failure is reported on the returned FetchResult and logged; nothing
raises past fetch(), so one broken source never aborts a poll cycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from votebot.votes.models import VoterRecord

from .errors import FetchFailure, NetworkFailure, ShapeFailure, StatusFailure

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    url: str
    voters: list[VoterRecord] = field(default_factory=list)
    failure: FetchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def _parse_voter(entry: Any) -> VoterRecord | None:
    if not isinstance(entry, dict):
        return None
    nickname, votes = entry.get("nickname"), entry.get("votes")
    # bool is an int subclass; a "votes": true entry is still malformed
    if not isinstance(nickname, str) or not nickname:
        return None
    if not isinstance(votes, int) or isinstance(votes, bool) or votes < 0:
        return None
    return VoterRecord(nickname=nickname, votes=votes)


def parse_voters(url: str, data: Any) -> list[VoterRecord]:
    """Validate a decoded payload and return its voters; raises ShapeFailure."""
    if not isinstance(data, dict):
        raise ShapeFailure(url, f"expected a JSON object, got {type(data).__name__}")
    raw = data.get("voters")
    if not isinstance(raw, list):
        raise ShapeFailure(url, "'voters' is not a list")

    voters: list[VoterRecord] = []
    for i, entry in enumerate(raw):
        voter = _parse_voter(entry)
        if voter is None:
            logger.warning("Skipping malformed voter #%d from %s: %r", i, url, entry)
            continue
        voters.append(voter)
    return voters


class SourceClient:
    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def _get_voters(self, url: str) -> list[VoterRecord]:
        try:
            response = await self._http.get(url)
        except httpx.RequestError as e:
            raise NetworkFailure(url, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise StatusFailure(url, response.status_code, response.reason_phrase)

        try:
            data = response.json()
        except ValueError as e:
            raise ShapeFailure(url, "body is not valid JSON") from e
        logger.debug("Response from %s: %s", url, data)

        return parse_voters(url, data)

    async def fetch(self, url: str) -> FetchResult:
        logger.info("Fetching votes from source: %s", url)
        try:
            voters = await self._get_voters(url)
        except FetchFailure as failure:
            logger.error("Error fetching votes from %s: %s", url, failure)
            return FetchResult(url=url, failure=failure)

        logger.info("Source %s reported %d voter(s)", url, len(voters))
        return FetchResult(url=url, voters=voters)
