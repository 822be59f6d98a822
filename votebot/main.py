"""
Alternate entrypoint that simply delegates to the bot script.

Allows `python -m votebot.main` to run the bot.
"""

import asyncio

from votecord import main as script_main


def main() -> None:
    try:
        asyncio.run(script_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
