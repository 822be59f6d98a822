"""Async database engine construction.

The engine is created once at process start, passed explicitly to the vote
store and disposed on shutdown.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

DEFAULT_DRIVER = "mysql+aiomysql"
DEFAULT_POOL_SIZE = 10
DEFAULT_CONNECT_TIMEOUT = 20


def build_database_url(db_cfg: dict[str, Any]) -> URL:
    """
    Build the connection URL from the `database` config section.

    An explicit `url` wins; otherwise host/port/user/password/name are
    assembled into a MySQL URL.
    """
    if db_cfg.get("url"):
        return make_url(db_cfg["url"])
    port = db_cfg.get("port")
    return URL.create(
        db_cfg.get("driver") or DEFAULT_DRIVER,
        username=db_cfg.get("user"),
        password=db_cfg.get("password"),
        host=db_cfg.get("host"),
        port=int(port) if port else None,
        database=db_cfg.get("name"),
    )


def create_engine_from_config(db_cfg: dict[str, Any], **kwargs: Any) -> AsyncEngine:
    """Create the process-wide async engine.

    Pool sizing applies to server backends, connect timeout to MySQL only;
    SQLite gets the driver defaults.
    """
    url = build_database_url(db_cfg)
    backend = url.get_backend_name()
    if backend != "sqlite":
        kwargs.setdefault("pool_size", int(db_cfg.get("pool_size", DEFAULT_POOL_SIZE)))
        kwargs.setdefault("pool_pre_ping", True)
    if backend == "mysql":
        connect_args = dict(kwargs.pop("connect_args", {}))
        connect_args.setdefault(
            "connect_timeout", int(db_cfg.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT))
        )
        kwargs["connect_args"] = connect_args
    return create_async_engine(url, **kwargs)
