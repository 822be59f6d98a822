import asyncio
import logging
import os

import httpx

from votebot.config.loader import get_config
from votebot.discord.bot import build_bot
from votebot.sources.client import SourceClient
from votebot.votes.database import create_engine_from_config
from votebot.votes.init_guard import InitializationGuard
from votebot.votes.poller import Poller
from votebot.votes.store import VoteStore

if os.environ.get("DEBUG"):
    logging.basicConfig(level=logging.DEBUG)
    logging.getLogger("httpx").setLevel(logging.DEBUG)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")


async def main() -> None:
    logging.info("Starting bot script...")
    config = get_config()
    db_cfg = config["database"]
    poll_cfg = config.get("poll") or {}

    engine = create_engine_from_config(db_cfg)
    try:
        async with httpx.AsyncClient() as httpx_client:
            store = VoteStore(engine, write_concurrency=int(db_cfg.get("write_concurrency", 10)))
            poller = Poller(
                store,
                SourceClient(httpx_client),
                config["sources"],
                dedupe_within_cycle=poll_cfg.get("dedupe_within_cycle", False),
                serialize_cycles=poll_cfg.get("serialize_cycles", False),
            )
            guard = InitializationGuard(store)

            logging.info(f"🚀 Bot starting | sources: {poller.source_urls}")
            state = await guard.run()
            logging.info(f"Database state: {state.value}")

            discord_bot = build_bot(config, poller, guard)
            async with discord_bot:
                await discord_bot.start(config["bot_token"])
    finally:
        await engine.dispose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
