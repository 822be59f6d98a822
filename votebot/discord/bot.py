"""
Discord surface of the vote bot.

Slash commands (registered on the configured guild):
  /voting        run one poll cycle and list the newly discovered votes
  /votingstatus  show whether the vote database finished initializing
"""

from __future__ import annotations

import logging
from typing import Any

import discord
from discord.ext import commands

from votebot.votes.init_guard import InitializationGuard
from votebot.votes.poller import CycleReport, Poller

from .errors import handle_app_command_error, notify_cycle_problems
from .render import render_votes, split_message


async def run_voting_command(
    interaction: discord.Interaction,
    poller: Poller,
    discord_bot: discord.Client,
    config: dict[str, Any],
) -> CycleReport:
    logging.info("Processing /voting command...")

    # Acknowledge first; a cycle can outlast Discord's 3 second window.
    await interaction.response.defer()

    report = await poller.run_cycle()
    chunks = split_message(render_votes(report.records))
    await interaction.edit_original_response(content=chunks[0])
    for chunk in chunks[1:]:
        await interaction.followup.send(chunk)

    if report.records:
        logging.info("Votes sent in response: %d line(s)", len(report.records))
    else:
        logging.info("No new votes to display.")

    if not report.clean:
        await notify_cycle_problems(discord_bot, config, report)

    return report


def build_bot(config: dict[str, Any], poller: Poller, guard: InitializationGuard) -> commands.Bot:
    """Create the bot with both slash commands bound to the given poller and guard."""
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    discord_bot = commands.Bot(intents=intents, command_prefix=None)
    guild = discord.Object(id=config["guild_id"])

    # ── Slash commands ──────────────────────────────────────────────────────

    @discord_bot.tree.command(name="voting", description="Retrieve the current votes", guild=guild)
    async def voting_command(interaction: discord.Interaction) -> None:
        await run_voting_command(interaction, poller, discord_bot, config)

    @discord_bot.tree.command(name="votingstatus", description="Show vote database status", guild=guild)
    async def voting_status_command(interaction: discord.Interaction) -> None:
        sources = len(poller.source_urls)
        await interaction.response.send_message(
            f"{guard.status_line()}\n📡 Sources configured: {sources}", ephemeral=True
        )

    @discord_bot.tree.error
    async def on_app_command_error(interaction: discord.Interaction, error: Exception) -> None:
        await handle_app_command_error(interaction, error, discord_bot, config)

    # ── Events ───────────────────────────────────────────────────────────────

    @discord_bot.event
    async def on_ready() -> None:
        logging.info(f"Logged in as {discord_bot.user}")
        logging.info(f"Sources: {poller.source_urls}")

        target = discord_bot.get_guild(config["guild_id"])
        if target is None:
            logging.error("Guild not found! Make sure guild_id is correct in config.yaml / GUILD_ID in .env.")
            return

        try:
            logging.info(f"Registering commands for guild: {target.name}")
            synced = await discord_bot.tree.sync(guild=target)
            logging.info(f"Synced {len(synced)} slash commands for guild: {target.name}")
        except discord.HTTPException as e:
            logging.error(f"Error registering commands: {e}")

    return discord_bot
