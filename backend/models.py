"""
Pydantic models used across the backend.

Input shapes (`EventIn`, `EventUpdate`, `RejectIn`, `OrganizerRequestIn`)
validate at the FastAPI route boundary and are handed to the services.
Output shapes (`EventOut`, `OrganizerRequestOut`, `SubmitResult`) wrap the
plain dicts the repositories return.

Guidelines:
- Temporal input stays as the user entered it (local date, "HH:MM",
  duration, offset); only `time_normalizer` turns it into UTC.
- Timestamps leave the API as ISO-8601 UTC strings with a `Z` suffix.
"""

from datetime import date, datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_serializer

from time_normalizer import isoformat_utc

EventType = Literal["fundraiser", "rally", "meeting", "training", "social", "other"]
Visibility = Literal["public", "private", "members"]
EventStatus = Literal["pending", "approved", "rejected"]
DurationUnitName = Literal["minutes", "hours", "days"]
OrganizationType = Literal["committee", "club", "group", "campaign", "party", "other"]

# Only this event type may carry a recurrence descriptor.
RECURRING_EVENT_TYPE = "meeting"


class EventIn(BaseModel):
    """Event submission as sent by the submit form.

    Fields:
    - `start_date`: the calendar day picked in the user's own zone.
    - `start_time`: optional "HH:MM" (24h); missing means local midnight.
    - `duration_value` + `duration_unit`, or `end_date` (+ `end_time`):
      how long the event runs. Neither means one hour.
    - `timezone_offset_minutes`: minutes the user's zone is behind UTC
      (browser `getTimezoneOffset()`; EST = 300, CET = -60).
    - `is_recurring`, `recurring_pattern` ("2nd-monday"), `recurring_months`:
      kept only for meetings.
    """

    name: str = Field(max_length=255)
    description: str
    start_date: date
    start_time: Optional[str] = None
    is_all_day: bool = False
    duration_value: Optional[int] = None
    duration_unit: Optional[DurationUnitName] = None
    end_date: Optional[date] = None
    end_time: Optional[str] = None
    timezone_offset_minutes: Optional[int] = None

    location: str = Field(max_length=255)
    location_address: Optional[str] = None
    location_latitude: Optional[str] = Field(default=None, max_length=20)
    location_longitude: Optional[str] = Field(default=None, max_length=20)

    organizer_name: str = Field(max_length=255)
    organizer_email: str = Field(max_length=320)
    organizer_phone: Optional[str] = Field(default=None, max_length=20)
    organizer_url: Optional[str] = Field(default=None, max_length=2048)
    event_url: Optional[str] = Field(default=None, max_length=2048)
    image_url: Optional[str] = Field(default=None, max_length=2048)

    event_type: EventType = "other"
    visibility: Visibility = "public"

    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    recurring_months: Optional[List[int]] = None


class EventUpdate(BaseModel):
    """Partial update. Only fields the client actually sent are applied.

    Sending any of the temporal fields re-normalizes the whole interval,
    so `start_date` is required whenever one of them is present.
    """

    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    start_time: Optional[str] = None
    is_all_day: Optional[bool] = None
    duration_value: Optional[int] = None
    duration_unit: Optional[DurationUnitName] = None
    end_date: Optional[date] = None
    end_time: Optional[str] = None
    timezone_offset_minutes: Optional[int] = None
    location: Optional[str] = Field(default=None, max_length=255)
    location_address: Optional[str] = None
    location_latitude: Optional[str] = Field(default=None, max_length=20)
    location_longitude: Optional[str] = Field(default=None, max_length=20)
    organizer_name: Optional[str] = Field(default=None, max_length=255)
    organizer_email: Optional[str] = Field(default=None, max_length=320)
    organizer_phone: Optional[str] = Field(default=None, max_length=20)
    organizer_url: Optional[str] = Field(default=None, max_length=2048)
    event_url: Optional[str] = Field(default=None, max_length=2048)
    image_url: Optional[str] = Field(default=None, max_length=2048)
    event_type: Optional[EventType] = None
    visibility: Optional[Visibility] = None
    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[str] = None
    recurring_months: Optional[List[int]] = None


class RejectIn(BaseModel):
    reason: str


class EventFilters(BaseModel):
    """Public listing filters; all optional, combined with AND."""

    start_from: Optional[datetime] = None
    start_to: Optional[datetime] = None
    search: Optional[str] = None
    event_type: Optional[EventType] = None


class SubmitResult(BaseModel):
    id: int
    status: EventStatus
    message: str


class EventOut(BaseModel):
    """Stored event as returned to clients."""

    id: int
    name: str
    description: str
    start_utc: datetime
    end_utc: datetime
    is_all_day: bool = False
    location: str
    location_address: Optional[str] = None
    location_latitude: Optional[str] = None
    location_longitude: Optional[str] = None
    organizer_name: str
    organizer_email: str
    organizer_phone: Optional[str] = None
    organizer_url: Optional[str] = None
    event_url: Optional[str] = None
    image_url: Optional[str] = None
    event_type: EventType
    visibility: Visibility
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    recurring_months: Optional[str] = None
    status: EventStatus
    submitted_by: Optional[int] = None
    submitted_at: datetime
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @field_serializer("start_utc", "end_utc", "submitted_at", "approved_at")
    def _utc(self, value: Optional[datetime]) -> Optional[str]:
        return isoformat_utc(value) if value is not None else None


class EventPage(BaseModel):
    events: List[EventOut]
    total: int


class OrganizerRequestIn(BaseModel):
    """Request from a would-be organizer for a representative account."""

    email: str = Field(max_length=320)
    name: str = Field(max_length=255)
    organization_name: str = Field(max_length=255)
    organization_type: OrganizationType = "other"
    phone: Optional[str] = Field(default=None, max_length=20)
    message: Optional[str] = None


class OrganizerRequestOut(BaseModel):
    id: int
    email: str
    name: str
    organization_name: str
    organization_type: OrganizationType
    phone: Optional[str] = None
    message: Optional[str] = None
    status: EventStatus
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime

    @field_serializer("approved_at", "created_at")
    def _utc(self, value: Optional[datetime]) -> Optional[str]:
        return isoformat_utc(value) if value is not None else None


class OrganizerRequestPage(BaseModel):
    requests: List[OrganizerRequestOut]
    total: int
