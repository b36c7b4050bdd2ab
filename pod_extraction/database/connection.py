from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from pod_extraction.config.settings import Settings

_pool: ConnectionPool | None = None


def build_conninfo(settings: Settings) -> str:
    """libpq connection string for the configured database, with values quoted."""
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
        application_name="pod-extraction",
    )


def init_pool(settings: Settings) -> None:
    """Open the global connection pool.

    Concurrent page workers each hold a connection while writing, and the
    job runner needs one for heartbeats, so the pool never shrinks below
    page_concurrency + 1.
    """
    global _pool  # noqa: PLW0603
    _pool = ConnectionPool(
        build_conninfo(settings),
        min_size=settings.db_pool_min_size,
        max_size=max(settings.db_pool_max_size, settings.page_concurrency + 1),
        check=ConnectionPool.check_connection,
        name="pod_extraction",
        open=True,
    )


def close_pool() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Borrow a pooled connection. Caller commits; uncommitted work is rolled back."""
    if _pool is None:
        raise RuntimeError("Database pool is not open; call init_pool(settings) first")
    with _pool.connection() as conn:
        yield conn
