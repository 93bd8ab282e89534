"""
Service / facade layer for event submission and publication.

This module implements business rules and normalization before any DB
interaction. It is intentionally free of SQL; it calls `EventRepo` to
perform database operations. All write paths should go through this
service to ensure consistency and a single security chokepoint.

Key responsibilities:
- normalize submitted wall-clock times to a UTC interval (`time_normalizer`)
- validate and serialize recurrence descriptors (`recurrence`)
- decide the initial status from the caller's auto-approve capability
- enforce ownership on updates and admin-only deletes
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging

from auth import Caller, require_admin, require_authenticated
from errors import ForbiddenError, NotFoundError, ValidationError
from models import RECURRING_EVENT_TYPE, EventFilters, EventIn, EventUpdate, SubmitResult
from repo_events import EventRepo
from settings import settings
import recurrence
import time_normalizer
from time_normalizer import DurationUnit, NormalizedInterval, TimeInput

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = ("name", "description", "location", "organizer_name", "organizer_email")

# Fields of EventIn/EventUpdate that feed the normalizer instead of a column.
TEMPORAL_FIELDS = (
    "start_date",
    "start_time",
    "duration_value",
    "duration_unit",
    "end_date",
    "end_time",
    "timezone_offset_minutes",
)
RECURRENCE_FIELDS = ("is_recurring", "recurring_pattern", "recurring_months")
# An explicit null for these in an update means "leave as is".
NON_NULLABLE_FIELDS = ("event_type", "visibility", "is_all_day")

AUTO_APPROVED_MESSAGE = "Event submitted and automatically approved!"
PENDING_MESSAGE = "Event submitted for review. An admin will review it shortly."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_time_input(fields: Dict[str, Any]) -> TimeInput:
    """Map submission fields onto a `TimeInput`, parsing the "HH:MM" strings.

    An all-day event with neither a duration nor an end date starts at local
    midnight and lasts one day.
    """

    is_all_day = bool(fields.get("is_all_day"))
    start_time = None if is_all_day else fields.get("start_time")
    end_time = fields.get("end_time")
    duration_value = fields.get("duration_value")
    duration_unit = fields.get("duration_unit")
    if is_all_day and duration_value is None and fields.get("end_date") is None:
        duration_value, duration_unit = 1, DurationUnit.DAYS

    return TimeInput(
        local_date=fields["start_date"],
        clock_time=time_normalizer.parse_clock_time(start_time) if start_time else None,
        is_all_day=is_all_day,
        duration_value=duration_value,
        duration_unit=duration_unit,
        explicit_end_date=fields.get("end_date"),
        explicit_end_time=time_normalizer.parse_clock_time(end_time) if end_time else None,
        timezone_offset_minutes=fields.get("timezone_offset_minutes"),
    )


def resolve_recurrence(
    event_type: str,
    is_recurring: bool,
    pattern: Optional[str],
    months: Optional[List[int]],
) -> Dict[str, Any]:
    """Return the recurrence columns for an event.

    Non-meeting events never carry a descriptor: any recurrence input is
    dropped without error. A recurring meeting must name a pattern; its
    month list may be empty.
    """

    cleared = {"is_recurring": False, "recurring_pattern": None, "recurring_months": None}
    if event_type != RECURRING_EVENT_TYPE:
        if is_recurring or pattern or months:
            logger.debug("Dropping recurrence fields on non-meeting event type %r", event_type)
        return cleared
    if not is_recurring:
        return cleared
    if not pattern:
        raise ValidationError("Recurring meetings need a recurrence pattern (e.g. 2nd-monday)")

    ordinal, weekday = recurrence.parse_pattern(pattern)
    descriptor = recurrence.validate(ordinal, weekday, months or [])
    if not descriptor.is_complete:
        logger.info("Recurring meeting %s has no active months configured", descriptor.pattern)
    pattern_col, months_col = recurrence.serialize(descriptor)
    return {"is_recurring": True, "recurring_pattern": pattern_col, "recurring_months": months_col}


def _check_required_text(fields: Dict[str, Any], names) -> None:
    for name in names:
        if name in fields and not (fields[name] or "").strip():
            raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required")
    email = fields.get("organizer_email")
    if email is not None and "@" not in email:
        raise ValidationError("Valid organizer email required")


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        limit = settings.default_list_limit
    return max(1, min(limit, settings.max_list_limit))


class EventService:
    """Business rules + validation + normalization for events.

    Example usage:
        repo = EventRepo()
        svc = EventService(repo)
        svc.submit(event_in, caller)
    """

    def __init__(self, repo: EventRepo, default_offset_minutes: Optional[int] = None):
        self.repo = repo
        self.default_offset_minutes = default_offset_minutes

    def normalize(self, fields: Dict[str, Any]) -> NormalizedInterval:
        return time_normalizer.normalize(build_time_input(fields), self.default_offset_minutes)

    def submit(self, event: EventIn, caller: Caller) -> SubmitResult:
        """Validate, normalize and persist one submission.

        Steps:
        1. Required text fields must be non-blank.
        2. Normalize the temporal fields to a UTC interval.
        3. Resolve recurrence (meetings only; silently dropped otherwise).
        4. Status: approved for callers with auto-approve, else pending.
        5. One `EventRepo.insert()`.

        Raises `ValidationError`; nothing is written when it does.
        """

        fields = event.model_dump()
        _check_required_text(fields, REQUIRED_TEXT_FIELDS)
        interval = self.normalize(fields)
        recurrence_cols = resolve_recurrence(
            event.event_type, event.is_recurring, event.recurring_pattern, event.recurring_months
        )

        now = utcnow()
        auto_approve = caller.can_auto_approve
        record = {
            k: v for k, v in fields.items() if k not in TEMPORAL_FIELDS and k not in RECURRENCE_FIELDS
        }
        record.update(recurrence_cols)
        record.update(
            start_utc=interval.start_utc,
            end_utc=interval.end_utc,
            status="approved" if auto_approve else "pending",
            submitted_by=caller.user_id,
            submitted_at=now,
            approved_by=caller.user_id if auto_approve else None,
            approved_at=now if auto_approve else None,
            rejection_reason=None,
        )

        new_id = self.repo.insert(record)
        logger.info(
            "Event %s submitted by %s (%s): %s",
            new_id, caller.user_id, record["status"], record["name"],
        )
        return SubmitResult(
            id=new_id,
            status=record["status"],
            message=AUTO_APPROVED_MESSAGE if auto_approve else PENDING_MESSAGE,
        )

    def get_public(self, event_id: int) -> Dict[str, Any]:
        """Return an approved event; anything else looks missing."""

        event = self.repo.get_by_id(event_id)
        if event is None or event["status"] != "approved":
            raise NotFoundError("Event not found")
        return event

    def list_approved(
        self,
        filters: Optional[EventFilters] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        return self.repo.list_by_status(
            ["approved"], filters, clamp_limit(limit), max(0, offset)
        )

    def feed_events(self) -> List[Dict[str, Any]]:
        """Approved events for the RSS/iCal feeds, earliest start first."""

        events, _ = self.repo.list_by_status(["approved"], None, settings.max_feed_items, 0)
        return events

    def list_submitted(self, caller: Caller) -> List[Dict[str, Any]]:
        require_authenticated(caller)
        return self.repo.list_by_submitter(caller.user_id)

    def update(self, event_id: int, changes: EventUpdate, caller: Caller) -> Dict[str, Any]:
        """Apply a partial update from the owner or an admin.

        Temporal fields are re-normalized together; recurrence fields are
        re-validated against the (possibly new) event type. Moderation
        state is never touched here.
        """

        require_authenticated(caller)
        event = self.repo.get_by_id(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if event["submitted_by"] != caller.user_id and not caller.is_admin:
            raise ForbiddenError("Can only edit your own events")

        sent = changes.model_dump(exclude_unset=True)
        _check_required_text(sent, REQUIRED_TEXT_FIELDS)
        update = {
            k: v
            for k, v in sent.items()
            if k not in TEMPORAL_FIELDS
            and k not in RECURRENCE_FIELDS
            and not (v is None and k in NON_NULLABLE_FIELDS)
        }

        if any(k in sent for k in TEMPORAL_FIELDS):
            if sent.get("start_date") is None:
                raise ValidationError("Start date is required when changing the event time")
            fields = dict(sent)
            if fields.get("is_all_day") is None:
                fields["is_all_day"] = event["is_all_day"]
            interval = self.normalize(fields)
            update.update(start_utc=interval.start_utc, end_utc=interval.end_utc)

        event_type = sent.get("event_type") or event["event_type"]
        if any(k in sent for k in RECURRENCE_FIELDS) or event_type != event["event_type"]:
            current = recurrence_input_from_record(event)
            current.update({k: sent[k] for k in RECURRENCE_FIELDS if k in sent})
            update.update(
                resolve_recurrence(
                    event_type,
                    bool(current["is_recurring"]),
                    current["recurring_pattern"],
                    current["recurring_months"],
                )
            )

        if update:
            self.repo.update(event_id, update)
            logger.info("Event %s updated by %s: %s", event_id, caller.user_id, sorted(update))
        return self.repo.get_by_id(event_id)

    def delete(self, event_id: int, caller: Caller) -> None:
        require_admin(caller)
        if self.repo.get_by_id(event_id) is None:
            raise NotFoundError("Event not found")
        self.repo.delete(event_id)
        logger.info("Event %s deleted by %s", event_id, caller.user_id)

    def health_check(self) -> None:
        """Perform a lightweight DB ping via the repository."""

        self.repo.ping()


def recurrence_input_from_record(event: Dict[str, Any]) -> Dict[str, Any]:
    """Recover recurrence input fields from stored columns."""

    months = None
    if event.get("recurring_months"):
        months = list(recurrence.parse_months_json(event["recurring_months"]))
    return {
        "is_recurring": bool(event.get("is_recurring")),
        "recurring_pattern": event.get("recurring_pattern"),
        "recurring_months": months,
    }
