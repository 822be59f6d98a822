import os
import tempfile
import unittest
from unittest import mock

from votebot.config.loader import apply_env_overrides, get_config
from votebot.config.validator import ConfigValidationError, validate_config


def valid_config():
    return {
        "bot_token": "token",
        "guild_id": 1234,
        "sources": ["https://a.example/voters", "https://b.example/voters"],
        "database": {"host": "db", "port": 3306, "user": "votes", "password": "pw", "name": "votes"},
        "poll": {"dedupe_within_cycle": False},
        "permissions": {"users": {"admin_ids": [1]}},
    }


class TestValidateConfig(unittest.TestCase):
    def test_valid_config_passes(self):
        validate_config(valid_config())

    def test_database_url_replaces_parts(self):
        cfg = valid_config()
        cfg["database"] = {"url": "sqlite+aiosqlite:///votes.db"}
        validate_config(cfg)

    def test_reports_every_problem(self):
        cfg = {
            "guild_id": "not-a-number",
            "sources": ["ftp://wrong", 5],
            "database": {"host": "db", "port": "abc"},
            "poll": {"serialize_cycles": "yes"},
        }
        with self.assertLogs("votebot.config.validator", level="ERROR") as logs:
            with self.assertRaises(ConfigValidationError) as ctx:
                validate_config(cfg)

        output = "\n".join(logs.output)
        for fragment in ("bot_token", "guild_id", "sources[0]", "sources[1]",
                         "'database' missing 'user'", "database.port", "poll.serialize_cycles"):
            self.assertIn(fragment, output)
        self.assertIn("error(s)", str(ctx.exception))

    def test_empty_sources(self):
        cfg = valid_config()
        cfg["sources"] = []
        with self.assertLogs("votebot.config.validator", level="ERROR"):
            with self.assertRaises(ConfigValidationError):
                validate_config(cfg)

    def test_duplicate_source_is_only_a_warning(self):
        cfg = valid_config()
        cfg["sources"] = ["https://a.example/voters"] * 2
        with self.assertLogs("votebot.config.validator", level="WARNING") as logs:
            validate_config(cfg)
        self.assertIn("more than once", logs.output[0])


class TestEnvOverrides(unittest.TestCase):
    ENV = {
        "TOKEN": "env-token",
        "GUILD_ID": "42",
        "API_URLS": "https://a.example/v, https://b.example/v,",
        "DB_HOST": "envhost",
        "DB_PORT": "3307",
        "DB_USER": "envuser",
        "DB_PASSWORD": "envpw",
        "DB_NAME": "envdb",
    }

    def test_fills_missing_keys_from_environment(self):
        cfg = apply_env_overrides({}, self.ENV)

        self.assertEqual(cfg["bot_token"], "env-token")
        self.assertEqual(cfg["guild_id"], 42)
        self.assertEqual(cfg["sources"], ["https://a.example/v", "https://b.example/v"])
        self.assertEqual(cfg["database"]["host"], "envhost")
        self.assertEqual(cfg["database"]["port"], "3307")
        validate_config(cfg)

    def test_blank_database_values_come_from_environment(self):
        cfg = apply_env_overrides({"database": {"host": "db", "password": ""}}, self.ENV)
        self.assertEqual(cfg["database"]["password"], "envpw")
        self.assertEqual(cfg["database"]["host"], "db")

    def test_yaml_values_win(self):
        cfg = apply_env_overrides(valid_config(), self.ENV)
        self.assertEqual(cfg["bot_token"], "token")
        self.assertEqual(cfg["guild_id"], 1234)
        self.assertEqual(cfg["sources"][0], "https://a.example/voters")
        self.assertEqual(cfg["database"]["host"], "db")

    def test_database_url_is_not_mixed_with_parts(self):
        cfg = apply_env_overrides({"database": {"url": "sqlite+aiosqlite:///x.db"}}, self.ENV)
        self.assertEqual(cfg["database"], {"url": "sqlite+aiosqlite:///x.db"})


class TestGetConfig(unittest.TestCase):
    def test_invalid_config_exits(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.yaml")
            with open(path, "w", encoding="utf-8") as f:
                f.write("sources: []\n")
            with mock.patch.dict(os.environ, {}, clear=True), \
                    mock.patch("votebot.config.loader.load_dotenv"), \
                    self.assertLogs("votebot.config.validator", level="ERROR"):
                with self.assertRaises(SystemExit) as ctx:
                    get_config(path)
        self.assertEqual(ctx.exception.code, 1)

    def test_loads_yaml(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.yaml")
            with open(path, "w", encoding="utf-8") as f:
                f.write(
                    "bot_token: abc\n"
                    "guild_id: 99\n"
                    "sources:\n  - https://a.example/voters\n"
                    "database:\n  url: sqlite+aiosqlite:///votes.db\n"
                )
            with mock.patch.dict(os.environ, {}, clear=True), \
                    mock.patch("votebot.config.loader.load_dotenv"):
                cfg = get_config(path)
        self.assertEqual(cfg["guild_id"], 99)
        self.assertEqual(cfg["sources"], ["https://a.example/voters"])


if __name__ == "__main__":
    unittest.main()
