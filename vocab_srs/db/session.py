"""Database session and engine utilities.

This module centralises the creation of the SQLAlchemy engine and session
factory. It also offers a lightweight SQLite fallback for local development
when a PostgreSQL instance is unavailable.
"""

from __future__ import annotations

import logging
import os
import time
from time import perf_counter
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import ArgumentError, OperationalError
from sqlalchemy.orm import sessionmaker

from vocab_srs.core.config import settings

logger = logging.getLogger(__name__)


def _derive_connection_parameters(database_url: str) -> tuple[str, dict[str, Any]]:
    """Return the URL and driver arguments used to build the engine."""

    try:
        parsed_url: URL = make_url(database_url)
    except ArgumentError:
        return database_url, {}

    connect_args: dict[str, Any] = {}
    if parsed_url.drivername == "sqlite":
        # FastAPI runs sync endpoints in a threadpool.
        connect_args["check_same_thread"] = False

    return parsed_url.render_as_string(hide_password=False), connect_args


def _should_enable_sqlite_fallback() -> bool:
    environment = (getattr(settings, "ENVIRONMENT", "development") or "").lower()
    if os.getenv("DISABLE_SQLITE_FALLBACK") == "1":
        return False
    return environment in {"development", "local"}


SQLITE_FALLBACK_URL = "sqlite:///./vocab_srs_local.db"

# These globals are populated by ``configure_database``.
sync_engine: Engine
SessionLocal: sessionmaker


def _shorten(value: Any, limit: int = 200) -> str:
    text_value = " ".join(value.split()) if isinstance(value, str) else repr(value)
    return text_value if len(text_value) <= limit else text_value[: limit - 3] + "..."


def _install_slow_query_logger(engine: Engine) -> None:
    """Warn about statements slower than ``SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS``."""

    threshold_ms = float(settings.SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS or 0)
    if threshold_ms <= 0 or getattr(engine, "_slow_query_logger_installed", False):
        return
    engine._slow_query_logger_installed = True

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_started_at", []).append(perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _report_if_slow(conn, cursor, statement, parameters, context, executemany):
        started = conn.info.get("query_started_at")
        if not started:
            return
        elapsed_ms = (perf_counter() - started.pop()) * 1000.0
        if elapsed_ms >= threshold_ms:
            logger.warning(
                "Slow SQL (%.1f ms) - %s | params=%s",
                elapsed_ms,
                _shorten(statement),
                _shorten(parameters),
            )


def _ping(engine: Engine) -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


def _verify_database_connection(engine: Engine) -> None:
    """Ping *engine*, retrying with exponential backoff (SQLite is pinged once)."""

    if engine.dialect.name == "sqlite":
        _ping(engine)
        return

    attempts = max(settings.DATABASE_CONNECTION_MAX_RETRIES, 1)
    backoff = max(settings.DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS, 0.1)

    for attempt in range(1, attempts + 1):
        try:
            _ping(engine)
            return
        except (OperationalError, OSError) as exc:
            if attempt == attempts:
                raise
            delay = min(30.0, backoff * 2 ** (attempt - 1))
            logger.warning(
                "Database connection failed (attempt %s/%s): %s. Retrying in %.1f s.",
                attempt,
                attempts,
                exc,
                delay,
            )
            time.sleep(delay)


def configure_database(database_url: str | None = None, *, allow_fallback: bool = True) -> None:
    """Initialise the engine and session factory.

    ``database_url`` defaults to the environment configuration. When the
    connection attempt fails locally we fall back to a SQLite database so the
    API can boot without a running PostgreSQL instance.
    """

    global sync_engine, SessionLocal

    target_url = str(database_url or settings.DATABASE_URL)
    url, connect_args = _derive_connection_parameters(target_url)

    logger.info("Configuring database: %s", make_url(url).render_as_string(hide_password=True))

    candidate_engine = create_engine(
        url,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    _install_slow_query_logger(candidate_engine)

    try:
        _verify_database_connection(candidate_engine)
    except (OperationalError, OSError) as exc:
        if allow_fallback and _should_enable_sqlite_fallback():
            logger.warning(
                "Cannot reach database '%s' (%s). Falling back to SQLite.",
                url,
                exc,
            )
            candidate_engine.dispose()
            configure_database(SQLITE_FALLBACK_URL, allow_fallback=False)
            return

        logger.error("Database connection failed: %s", exc)
        raise

    sync_engine = candidate_engine
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=sync_engine)


# Initialise the engine at import time so the rest of the application can use
# it immediately.
configure_database()
