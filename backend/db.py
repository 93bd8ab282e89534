"""
Database connection helper.

Every repository call opens its own short-lived psycopg connection through
`get_conn()`. Rows come back as dicts (`dict_row`) keyed by column name,
which is the record shape the services work with.

Usage:
    from db import get_conn
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")

There is no retry here: a failed connection propagates to the route,
which answers 500. Retrying an INSERT blindly could duplicate an event.
"""

import psycopg
from psycopg.rows import dict_row
from settings import settings


def get_conn():
    """Return a new psycopg connection using `settings.db_url`.

    `connect_timeout` keeps HTTP requests from hanging when the database
    is unreachable. Sessions run in UTC so `TIMESTAMPTZ` values come back
    as UTC datetimes.
    """

    return psycopg.connect(
        settings.db_url,
        connect_timeout=5,
        row_factory=dict_row,
        options="-c timezone=UTC",
    )
