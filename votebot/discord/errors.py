"""
Admin-facing error reporting.

Users only ever see a generic reply; the details of failed sources, an
unreadable vote table or rejected rows go to the admins listed under
permissions.users.admin_ids.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

import discord

from votebot.sources.errors import parse_fetch_failure
from votebot.votes.poller import CycleReport

USER_ERROR_MESSAGE = "Something went wrong running this command. Admins have been notified."
MAX_DETAIL_LINES = 10


def _admin_ids(config: dict[str, Any]) -> list[int]:
    return config.get("permissions", {}).get("users", {}).get("admin_ids", []) or []


def format_admin_message(context: str, details: list[str]) -> str:
    lines = [
        "🤖 **Vote Bot Error**",
        f"⏰ Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"📝 Context: {context}",
        "",
    ]
    lines += details[:MAX_DETAIL_LINES]
    if len(details) > MAX_DETAIL_LINES:
        lines.append(f"… and {len(details) - MAX_DETAIL_LINES} more")
    return "\n".join(lines)


async def _dm_admins(discord_bot: discord.Client, admin_ids: list[int], msg: str) -> None:
    for admin_id in admin_ids:
        try:
            user = discord_bot.get_user(admin_id) or await discord_bot.fetch_user(admin_id)
            await user.send(msg)
        except discord.HTTPException as e:
            logging.warning("Could not notify admin %s: %s", admin_id, e)


async def notify_admin_error(
    discord_bot: discord.Client,
    config: dict[str, Any],
    error: Exception,
    context: str = "",
) -> None:
    """DM a one-line description of `error` to every configured admin."""
    admin_ids = _admin_ids(config)
    if admin_ids:
        await _dm_admins(discord_bot, admin_ids, format_admin_message(context, [parse_fetch_failure(error)]))


def describe_cycle_problems(report: CycleReport) -> list[str]:
    """One line per thing that went wrong in a poll cycle."""
    details = [parse_fetch_failure(failure) for failure in report.failed_sources.values()]
    if report.snapshot_error is not None:
        details.append(f"❌ Stored nicknames unreadable, every voter treated as new: {report.snapshot_error}")
    for outcome in report.persist.failed:
        details.append(f"❌ Not saved: {outcome.record.nickname} ({outcome.record.votes}): {outcome.error}")
    return details


async def notify_cycle_problems(
    discord_bot: discord.Client,
    config: dict[str, Any],
    report: CycleReport,
) -> None:
    details = describe_cycle_problems(report)
    logging.warning("Poll cycle finished with problems:\n%s", "\n".join(details))

    admin_ids = _admin_ids(config)
    if not admin_ids:
        return
    summary = (
        f"/voting cycle: {len(report.failed_sources)} source(s) failed, "
        f"{len(report.persist.failed)} row(s) not saved"
    )
    await _dm_admins(discord_bot, admin_ids, format_admin_message(summary, details))


async def handle_app_command_error(
    interaction: discord.Interaction,
    error: Exception,
    discord_bot: discord.Client,
    config: dict[str, Any],
) -> None:
    """
    Standard handler for slash command errors.
    """
    command = getattr(interaction.command, "name", "unknown")
    logging.exception("App command error in /%s: %s", command, error)
    await notify_admin_error(discord_bot, config, error, f"App command error: /{command}")

    send = interaction.followup.send if interaction.response.is_done() else interaction.response.send_message
    try:
        await send(USER_ERROR_MESSAGE, ephemeral=True)
    except discord.HTTPException as e:
        logging.warning("Could not report command error to user: %s", e)
