"""
Configuration validator for config.yaml (after environment overrides).

Validates structure, required fields, and common misconfigurations.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse


logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_config(cfg: dict[str, Any], config_path: str = "config.yaml") -> None:
    """
    Comprehensive validation of the bot configuration.

    Raises ConfigValidationError if validation fails.
    Logs detailed error messages before raising.

    Args:
        cfg: The loaded config dictionary
        config_path: Path to config file (for error messages)

    Raises:
        ConfigValidationError: If validation fails
    """
    errors = []
    warnings = []

    # ── Check root structure ────────────────────────────────────────────────
    if not isinstance(cfg, dict):
        errors.append(f"Config root must be a mapping, got {type(cfg).__name__}")
        cfg = {}

    # ── Discord ─────────────────────────────────────────────────────────────
    token = cfg.get("bot_token")
    if not token:
        errors.append("Missing 'bot_token' (or TOKEN in .env)")
    elif not isinstance(token, str):
        errors.append(f"'bot_token' must be a string, got {type(token).__name__}")

    guild_id = cfg.get("guild_id")
    if guild_id is None:
        errors.append("Missing 'guild_id' (or GUILD_ID in .env)")
    elif not isinstance(guild_id, int) or isinstance(guild_id, bool):
        errors.append(f"'guild_id' must be an integer, got {type(guild_id).__name__}")

    # ── Validate sources ────────────────────────────────────────────────────
    sources = cfg.get("sources")
    if sources is None:
        errors.append("Missing 'sources' (or API_URLS in .env)")
    elif not isinstance(sources, list):
        errors.append(
            f"'sources' must be a list, got {type(sources).__name__}. "
            f"Use: sources:\n  - \"https://example.com/api/voters\""
        )
    elif not sources:
        errors.append("'sources' is empty (must define at least one source URL)")
    else:
        seen = set()
        for i, url in enumerate(sources):
            if not isinstance(url, str):
                errors.append(f"'sources[{i}]' must be a string, got {type(url).__name__}")
                continue
            if not _is_http_url(url):
                errors.append(f"'sources[{i}]' is not an http(s) URL: '{url}'")
            if url in seen:
                warnings.append(f"Source '{url}' is listed more than once; it will be polled twice")
            seen.add(url)

    # ── Validate database section ───────────────────────────────────────────
    db = cfg.get("database")
    if not isinstance(db, dict):
        errors.append(f"'database' must be a mapping, got {type(db).__name__}")
    elif not db.get("url"):
        for key in ("host", "user", "name"):
            if not db.get(key):
                errors.append(f"'database' missing '{key}' (or set 'database.url')")
        if "port" in db:
            try:
                int(db["port"])
            except (TypeError, ValueError):
                errors.append(f"'database.port' must be an integer, got '{db['port']}'")
    if isinstance(db, dict):
        for key in ("pool_size", "connect_timeout", "write_concurrency"):
            if key in db:
                value = db[key]
                if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                    errors.append(f"'database.{key}' must be a positive integer, got {value!r}")

    # ── Validate poll options ───────────────────────────────────────────────
    if "poll" in cfg:
        poll = cfg["poll"]
        if not isinstance(poll, dict):
            errors.append(f"'poll' must be a mapping, got {type(poll).__name__}")
        else:
            for flag in ("dedupe_within_cycle", "serialize_cycles"):
                if flag in poll and not isinstance(poll[flag], bool):
                    errors.append(
                        f"'poll.{flag}' must be boolean, got {type(poll[flag]).__name__}"
                    )
            unknown = set(poll) - {"dedupe_within_cycle", "serialize_cycles"}
            for key in sorted(unknown):
                warnings.append(f"Unknown 'poll' option '{key}' is ignored")

    # ── Validate permissions section ───────────────────────────────────────
    if "permissions" in cfg:
        perms = cfg["permissions"]
        if not isinstance(perms, dict):
            errors.append(
                f"'permissions' must be a mapping, got {type(perms).__name__}"
            )
        elif "users" in perms:
            users = perms["users"]
            if not isinstance(users, dict):
                errors.append(
                    f"'permissions.users' must be a mapping, got {type(users).__name__}"
                )
            elif "admin_ids" in users and not isinstance(users["admin_ids"], list):
                errors.append(
                    f"'permissions.users.admin_ids' must be a list, "
                    f"got {type(users['admin_ids']).__name__}"
                )

    # ── Log warnings ────────────────────────────────────────────────────────
    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    # ── Log errors and exit if any ──────────────────────────────────────────
    if errors:
        logger.error("=" * 70)
        logger.error("CONFIG VALIDATION FAILED (%s)", config_path)
        logger.error("=" * 70)
        for i, error in enumerate(errors, 1):
            logger.error("[%d] %s", i, error)
        logger.error("=" * 70)
        logger.error("Please fix the errors above and restart the bot.")
        logger.error("=" * 70)
        raise ConfigValidationError(f"Config validation failed with {len(errors)} error(s)")
