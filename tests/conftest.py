"""Shared fixtures: in-memory repositories and callers."""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from auth import ANONYMOUS, Caller
from models import EventFilters, EventIn
from repo_events import EVENT_COLUMNS
from service_events import EventService
from service_moderation import ModerationService
from service_requests import OrganizerRequestService


class FakeEventRepo:
    """Dict-backed stand-in for `EventRepo` with the same method surface."""

    def __init__(self):
        self.rows: Dict[int, Dict[str, Any]] = {}
        self.next_id = 1
        self.inserts = 0
        self.updates: List[Tuple[int, Dict[str, Any]]] = []

    def insert(self, record: Dict[str, Any]) -> int:
        unknown = set(record) - set(EVENT_COLUMNS)
        assert not unknown, f"unknown columns {unknown}"
        new_id = self.next_id
        self.next_id += 1
        now = datetime.now(timezone.utc)
        self.rows[new_id] = {**record, "id": new_id, "created_at": now, "updated_at": now}
        self.inserts += 1
        return new_id

    def get_by_id(self, event_id: int) -> Optional[Dict[str, Any]]:
        row = self.rows.get(event_id)
        return dict(row) if row is not None else None

    def update(self, event_id: int, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - set(EVENT_COLUMNS)
        assert not unknown, f"unknown columns {unknown}"
        self.updates.append((event_id, dict(fields)))
        if event_id in self.rows:
            self.rows[event_id].update(fields, updated_at=datetime.now(timezone.utc))

    def delete(self, event_id: int) -> None:
        self.rows.pop(event_id, None)

    def list_by_status(
        self,
        statuses: Sequence[str],
        filters: Optional[EventFilters] = None,
        limit: int = 50,
        offset: int = 0,
        newest_first: bool = False,
    ):
        rows = [dict(r) for r in self.rows.values() if r["status"] in statuses]
        if filters is not None:
            if filters.start_from is not None:
                rows = [r for r in rows if r["start_utc"] >= filters.start_from]
            if filters.start_to is not None:
                rows = [r for r in rows if r["start_utc"] <= filters.start_to]
            if filters.search:
                needle = filters.search.lower()
                rows = [
                    r for r in rows
                    if needle in r["name"].lower() or needle in r["description"].lower()
                ]
            if filters.event_type:
                rows = [r for r in rows if r["event_type"] == filters.event_type]
        if newest_first:
            rows.sort(key=lambda r: (r["submitted_at"], r["id"]), reverse=True)
        else:
            rows.sort(key=lambda r: (r["start_utc"], r["id"]))
        return rows[offset:offset + limit], len(rows)

    def list_by_submitter(self, user_id: int):
        rows = [dict(r) for r in self.rows.values() if r["submitted_by"] == user_id]
        return sorted(rows, key=lambda r: (r["submitted_at"], r["id"]), reverse=True)

    def ping(self) -> None:
        pass


class FakeRequestRepo:
    def __init__(self):
        self.rows: Dict[int, Dict[str, Any]] = {}
        self.next_id = 1

    def insert(self, record: Dict[str, Any]) -> int:
        new_id = self.next_id
        self.next_id += 1
        self.rows[new_id] = {
            "approved_by": None,
            "approved_at": None,
            "rejection_reason": None,
            **record,
            "id": new_id,
            "created_at": datetime.now(timezone.utc),
        }
        return new_id

    def get_by_id(self, request_id: int):
        row = self.rows.get(request_id)
        return dict(row) if row is not None else None

    def update(self, request_id: int, fields: Dict[str, Any]) -> None:
        self.rows[request_id].update(fields)

    def list_pending(self, limit: int, offset: int):
        rows = [dict(r) for r in self.rows.values() if r["status"] == "pending"]
        rows.sort(key=lambda r: r["id"], reverse=True)
        return rows[offset:offset + limit], len(rows)


@pytest.fixture
def repo():
    return FakeEventRepo()


@pytest.fixture
def request_repo():
    return FakeRequestRepo()


@pytest.fixture
def service(repo):
    return EventService(repo, default_offset_minutes=0)


@pytest.fixture
def moderation(repo):
    return ModerationService(repo)


@pytest.fixture
def request_service(request_repo):
    return OrganizerRequestService(request_repo)


@pytest.fixture
def anonymous():
    return ANONYMOUS


@pytest.fixture
def user():
    return Caller(user_id=10, role="user")


@pytest.fixture
def other_user():
    return Caller(user_id=11, role="user")


@pytest.fixture
def representative():
    return Caller(user_id=20, role="representative")


@pytest.fixture
def admin():
    return Caller(user_id=1, role="admin")


def make_event_in(**overrides) -> EventIn:
    fields = dict(
        name="Town Hall",
        description="Quarterly town hall with local representatives",
        start_date=date(2025, 1, 15),
        start_time="14:00",
        timezone_offset_minutes=300,
        location="Community Center",
        organizer_name="Jane Smith",
        organizer_email="jane@example.com",
    )
    fields.update(overrides)
    return EventIn(**fields)


@pytest.fixture
def event_in():
    return make_event_in
