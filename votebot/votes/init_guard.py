from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
RETRY_DELAY_SECONDS = 5.0


class SchemaOwner(Protocol):
    async def ensure_schema(self) -> None:
        ...


class InitState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DEGRADED = "degraded"


class InitializationGuard:
    """
    Makes sure the votes table exists before the first poll cycle.

    Retries a fixed number of times with a fixed pause. When every attempt
    fails the guard ends in DEGRADED and returns normally: the bot keeps
    serving commands and individual cycles fail at the storage layer instead.
    """

    def __init__(
        self,
        store: SchemaOwner,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self.state = InitState.UNINITIALIZED
        self.attempts = 0
        self.last_error: Exception | None = None

    async def run(self) -> InitState:
        self.state = InitState.INITIALIZING
        self.attempts = 0

        while self.attempts < self.max_attempts:
            try:
                await self._store.ensure_schema()
            except Exception as e:  # noqa: BLE001
                self.attempts += 1
                self.last_error = e
                logger.exception("Error initializing database (Attempt %d): %s", self.attempts, e)
                if self.attempts >= self.max_attempts:
                    logger.error("Max retries reached. Could not initialize database.")
                    break
                logger.info("Retrying in %ss...", self.retry_delay)
                await self._sleep(self.retry_delay)
            else:
                self.attempts += 1
                self.last_error = None
                self.state = InitState.READY
                logger.info("Votes table initialized")
                return self.state

        self.state = InitState.DEGRADED
        return self.state

    @property
    def degraded(self) -> bool:
        return self.state is InitState.DEGRADED

    def status_line(self) -> str:
        if self.state is InitState.READY:
            return "✅ Database ready"
        if self.state is InitState.DEGRADED:
            return (
                f"⚠️ Database degraded: schema setup failed after {self.attempts} attempt(s). "
                f"Last error: {self.last_error}"
            )
        return f"⏳ Database {self.state.value}"
