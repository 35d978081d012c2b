from __future__ import annotations

from contextlib import contextmanager
from typing import Optional

import psycopg2
import psycopg2.extras
from psycopg2.pool import SimpleConnectionPool

from backend import config

_pool: Optional[SimpleConnectionPool] = None


def get_pool() -> SimpleConnectionPool:
    """Small pooled connection manager, created on first use."""
    global _pool
    if _pool is None:
        if not config.DATABASE_URL:
            raise RuntimeError(
                "DATABASE_URL (or SUPABASE_DB_URL) must be set for the postgres history backend."
            )
        _pool = SimpleConnectionPool(minconn=1, maxconn=10, dsn=config.DATABASE_URL)
    return _pool


@contextmanager
def get_cursor():
    """
    Yield a real-dict cursor inside a transaction.
    Rolls back on error and always returns the connection to the pool.
    """
    pool = get_pool()
    conn = pool.getconn()
    cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
    try:
        yield conn, cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        pool.putconn(conn)


def init_db() -> None:
    """Create tables if they do not already exist."""
    with get_cursor() as (_, cur):
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS scan_events (
                seq BIGSERIAL PRIMARY KEY,
                id TEXT NOT NULL UNIQUE,
                data TEXT NOT NULL,
                ts_ms BIGINT NOT NULL,
                type TEXT NOT NULL,
                format TEXT NOT NULL DEFAULT 'QR_CODE'
            );
            """
        )
        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_scan_events_ts
            ON scan_events (ts_ms DESC);
            """
        )
