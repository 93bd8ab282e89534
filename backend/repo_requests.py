"""
Repository: SQL operations for `organizer_requests`.

Same conventions as `repo_events`: plain dicts in and out, one connection
per call, commit before returning.
"""

from typing import Any, Dict, List, Optional, Tuple
from psycopg import sql
from db import get_conn

REQUEST_COLUMNS = (
    "email",
    "name",
    "organization_name",
    "organization_type",
    "phone",
    "message",
    "status",
    "approved_by",
    "approved_at",
    "rejection_reason",
)


class OrganizerRequestRepo:
    def insert(self, record: Dict[str, Any]) -> int:
        cols = [c for c in REQUEST_COLUMNS if c in record]
        query = sql.SQL(
            "INSERT INTO organizer_requests ({cols}) VALUES ({vals}) RETURNING id"
        ).format(
            cols=sql.SQL(", ").join(map(sql.Identifier, cols)),
            vals=sql.SQL(", ").join(sql.Placeholder() * len(cols)),
        )
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, [record[c] for c in cols])
                new_id = cur.fetchone()["id"]
            conn.commit()
        return new_id

    def get_by_id(self, request_id: int) -> Optional[Dict[str, Any]]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT * FROM organizer_requests WHERE id = %s", (request_id,))
                return cur.fetchone()

    def update(self, request_id: int, fields: Dict[str, Any]) -> None:
        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(c)) for c in fields if c in REQUEST_COLUMNS
        ] + [sql.SQL("updated_at = now()")]
        values = [v for c, v in fields.items() if c in REQUEST_COLUMNS]
        query = sql.SQL("UPDATE organizer_requests SET {sets} WHERE id = %s").format(
            sets=sql.SQL(", ").join(assignments)
        )
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, [*values, request_id])
            conn.commit()

    def list_pending(self, limit: int, offset: int) -> Tuple[List[Dict[str, Any]], int]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) AS total FROM organizer_requests WHERE status = 'pending'"
                )
                total = cur.fetchone()["total"]
                cur.execute(
                    "SELECT * FROM organizer_requests WHERE status = 'pending' "
                    "ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                    (limit, offset),
                )
                return cur.fetchall(), total
