from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from htr_worker.config.settings import Settings

_pool: ConnectionPool | None = None

_SCHEMA = """
CREATE TABLE IF NOT EXISTS pages (
    process_id  INTEGER PRIMARY KEY,
    pid         TEXT,
    htr_id      INTEGER NOT NULL,
    in_progress BOOLEAN NOT NULL DEFAULT TRUE,
    user_name   TEXT,
    uploaded    TIMESTAMPTZ NOT NULL,
    downloaded  TIMESTAMPTZ,
    CONSTRAINT pages_in_progress_not_downloaded
        CHECK (NOT (in_progress AND downloaded IS NOT NULL))
);
CREATE INDEX IF NOT EXISTS pages_pid_idx ON pages (pid);
"""


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


def init_pool(settings: Settings) -> None:
    """Initialize the global connection pool from settings."""
    global _pool  # noqa: PLW0603
    _pool = ConnectionPool(build_conninfo(settings), min_size=1, max_size=10)


def close_pool() -> None:
    """Close the global connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a connection from the pool. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn


def ensure_schema() -> None:
    """Create the pages table and its pid index if they do not exist yet."""
    with get_connection() as conn:
        conn.execute(_SCHEMA)
        conn.commit()
