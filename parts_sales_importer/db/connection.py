from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..config.loader import DatabaseConfig

"""psycopg2 connection helper.

DSN resolution order:
    1. DATABASE_URL / PGDSN (whole DSN)
    2. database.dsn in import.yml
    3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each falling back to
       the matching database.* key, then to libpq-style defaults
"""

__all__ = [
    "resolve_dsn",
    "connect",
]


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def connect(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield an autocommit psycopg2 connection.

    Autocommit keeps each importer write in its own transaction: the batch row
    is visible before the first data row, and each upsert commits atomically.
    """
    conn = psycopg2.connect(resolve_dsn(db_cfg))
    try:
        conn.autocommit = True
        yield conn
    finally:
        if not conn.closed:
            conn.close()
