from __future__ import annotations

import logging
import os
import sys
from typing import Any

import yaml
from dotenv import load_dotenv

from .validator import validate_config, ConfigValidationError


DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "CONFIG_PATH"

# Environment variables of the original .env-only deployment -> database keys.
DB_ENV_KEYS = {
    "DB_HOST": "host",
    "DB_PORT": "port",
    "DB_USER": "user",
    "DB_PASSWORD": "password",
    "DB_NAME": "name",
}


def get_config_path() -> str:
    """
    Resolve the config path, preferring an explicit environment override.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return env_path
    return DEFAULT_CONFIG_FILE


def _load_raw_config(path: str | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    try:
        with open(cfg_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        # .env alone is a valid deployment
        logging.warning("Config file not found: %s (using environment only)", cfg_path)
        return {}
    except yaml.YAMLError as e:
        logging.error("YAML parsing error in %s: %s", cfg_path, e)
        sys.exit(1)

    if not isinstance(data, dict):
        logging.error("Config root must be a mapping, got %s", type(data).__name__)
        sys.exit(1)

    return data


def apply_env_overrides(cfg: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Fill keys missing from the YAML with values from the environment.
    YAML values always win.
    """
    env = os.environ if environ is None else environ

    if not cfg.get("bot_token") and env.get("TOKEN"):
        cfg["bot_token"] = env["TOKEN"]

    if cfg.get("guild_id") is None and env.get("GUILD_ID"):
        try:
            cfg["guild_id"] = int(env["GUILD_ID"])
        except ValueError:
            cfg["guild_id"] = env["GUILD_ID"]  # left for the validator to report

    if not cfg.get("sources") and env.get("API_URLS"):
        cfg["sources"] = [u.strip() for u in env["API_URLS"].split(",") if u.strip()]

    db = cfg.get("database")
    if db is None:
        db = cfg["database"] = {}
    if isinstance(db, dict) and not db.get("url"):
        for env_key, cfg_key in DB_ENV_KEYS.items():
            if db.get(cfg_key) in (None, "") and env.get(env_key):
                db[cfg_key] = env[env_key]

    return cfg


def get_config(path: str | None = None) -> dict[str, Any]:
    """
    Public helper for loading configuration.

    - Respects CONFIG_PATH if set.
    - Loads .env and fills missing keys from the environment.
    - Performs comprehensive validation.
    - Exits with error code 1 if validation fails.
    """
    load_dotenv()
    cfg_path = path or get_config_path()
    cfg = apply_env_overrides(_load_raw_config(cfg_path))

    try:
        validate_config(cfg, cfg_path)
    except ConfigValidationError:
        sys.exit(1)

    return cfg
