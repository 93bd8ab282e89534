"""
Repository: SQL operations for `events`.

This file contains only DB interaction code. It takes and returns plain
dicts keyed by column name (see `EVENT_COLUMNS`). Keep business rules
out of this module: status, approval stamps and normalized timestamps are
decided by the services before anything reaches here.

Important notes:
- Column names in dynamic INSERT/UPDATE statements are composed with
  `psycopg.sql.Identifier` and checked against `EVENT_COLUMNS`; values
  are always positional parameters.
- `start_utc` / `end_utc` are `TIMESTAMPTZ` in UTC. The submitter's
  timezone offset is never stored.
- Each write commits before returning. Concurrent updates to the same row
  are last-writer-wins; there is no locking or version check.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from psycopg import sql
from db import get_conn
from models import EventFilters

EVENT_COLUMNS = (
    "name",
    "description",
    "start_utc",
    "end_utc",
    "is_all_day",
    "location",
    "location_address",
    "location_latitude",
    "location_longitude",
    "organizer_name",
    "organizer_email",
    "organizer_phone",
    "organizer_url",
    "event_url",
    "image_url",
    "event_type",
    "visibility",
    "is_recurring",
    "recurring_pattern",
    "recurring_months",
    "status",
    "submitted_by",
    "submitted_at",
    "approved_by",
    "approved_at",
    "rejection_reason",
)

_SELECT = sql.SQL("SELECT id, {cols}, created_at, updated_at FROM events").format(
    cols=sql.SQL(", ").join(map(sql.Identifier, EVENT_COLUMNS))
)


def _check_columns(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - set(EVENT_COLUMNS)
    if unknown:
        raise KeyError(f"Unknown event columns: {sorted(unknown)}")


class EventRepo:
    """DB access only. No business logic here.

    Responsibilities:
    - Map record dicts -> SQL parameters
    - Execute queries and return plain dict objects
    - Keep transaction/commit boundaries local and explicit
    """

    def insert(self, record: Dict[str, Any]) -> int:
        """Insert one event and return its new id."""

        _check_columns(record)
        cols = list(record)
        query = sql.SQL("INSERT INTO events ({cols}) VALUES ({vals}) RETURNING id").format(
            cols=sql.SQL(", ").join(map(sql.Identifier, cols)),
            vals=sql.SQL(", ").join(sql.Placeholder() * len(cols)),
        )
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, [record[c] for c in cols])
                new_id = cur.fetchone()["id"]
            conn.commit()
        return new_id

    def get_by_id(self, event_id: int) -> Optional[Dict[str, Any]]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(_SELECT + sql.SQL(" WHERE id = %s"), (event_id,))
                return cur.fetchone()

    def update(self, event_id: int, fields: Dict[str, Any]) -> None:
        """Overwrite the given columns and bump `updated_at`."""

        _check_columns(fields)
        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(c)) for c in fields
        ] + [sql.SQL("updated_at = now()")]
        query = sql.SQL("UPDATE events SET {sets} WHERE id = %s").format(
            sets=sql.SQL(", ").join(assignments)
        )
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, [*fields.values(), event_id])
            conn.commit()

    def delete(self, event_id: int) -> None:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM events WHERE id = %s", (event_id,))
            conn.commit()

    def list_by_status(
        self,
        statuses: Sequence[str],
        filters: Optional[EventFilters] = None,
        limit: int = 50,
        offset: int = 0,
        newest_first: bool = False,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Return one page of events in `statuses` plus the total match count.

        Approved listings are ordered by start time ascending; the
        moderation queue passes `newest_first=True` to order by submission
        time descending.
        """

        conditions = [sql.SQL("status = ANY(%s)")]
        params: List[Any] = [list(statuses)]
        if filters is not None:
            if filters.start_from is not None:
                conditions.append(sql.SQL("start_utc >= %s"))
                params.append(filters.start_from)
            if filters.start_to is not None:
                conditions.append(sql.SQL("start_utc <= %s"))
                params.append(filters.start_to)
            if filters.search:
                conditions.append(sql.SQL("(name ILIKE %s OR description ILIKE %s)"))
                pattern = f"%{filters.search}%"
                params.extend([pattern, pattern])
            if filters.event_type:
                conditions.append(sql.SQL("event_type = %s"))
                params.append(filters.event_type)

        where = sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions)
        order = sql.SQL(
            " ORDER BY submitted_at DESC, id DESC" if newest_first else " ORDER BY start_utc ASC, id ASC"
        )
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(sql.SQL("SELECT COUNT(*) AS total FROM events") + where, params)
                total = cur.fetchone()["total"]
                cur.execute(
                    _SELECT + where + order + sql.SQL(" LIMIT %s OFFSET %s"),
                    [*params, limit, offset],
                )
                return cur.fetchall(), total

    def list_by_submitter(self, user_id: int) -> List[Dict[str, Any]]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    _SELECT + sql.SQL(" WHERE submitted_by = %s ORDER BY submitted_at DESC, id DESC"),
                    (user_id,),
                )
                return cur.fetchall()

    def ping(self) -> None:
        """Lightweight DB health check. Raises on error."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
