from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import Response
from datetime import datetime
from typing import List, Optional
import logging

from auth import Caller, get_caller
from feeds import render_ical, render_rss
from models import (
    EventFilters,
    EventIn,
    EventOut,
    EventPage,
    EventType,
    EventUpdate,
    OrganizerRequestIn,
    OrganizerRequestOut,
    OrganizerRequestPage,
    RejectIn,
    SubmitResult,
)
from repo_events import EventRepo
from repo_requests import OrganizerRequestRepo
from service_events import EventService
from service_moderation import ModerationService
from service_requests import OrganizerRequestService
from settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Community Events Backend")

# Instantiate the repos + services here so the routes remain thin. Tests
# swap them through `app.dependency_overrides` on the getters below.
repo = EventRepo()
svc = EventService(repo, default_offset_minutes=settings.default_tz_offset_minutes)
moderation = ModerationService(repo)
requests_svc = OrganizerRequestService(OrganizerRequestRepo())


def get_event_service() -> EventService:
    return svc


def get_moderation_service() -> ModerationService:
    return moderation


def get_request_service() -> OrganizerRequestService:
    return requests_svc


@app.get("/health")
def health(events: EventService = Depends(get_event_service)):
    try:
        events.health_check()
        return {"ok": True}
    except Exception as e:
        logger.exception("DB health check failed")
        raise HTTPException(status_code=500, detail=f"DB health check failed: {e}")


# --- public event routes ---------------------------------------------------

@app.post("/events", response_model=SubmitResult)
def submit_event(
    event: EventIn,
    caller: Caller = Depends(get_caller),
    events: EventService = Depends(get_event_service),
):
    try:
        return events.submit(event, caller)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Event submission failed")
        raise HTTPException(status_code=500, detail=f"Submit failed: {e}")


@app.get("/events", response_model=EventPage)
def list_events(
    start_from: Optional[datetime] = None,
    start_to: Optional[datetime] = None,
    search: Optional[str] = None,
    event_type: Optional[EventType] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    events: EventService = Depends(get_event_service),
):
    filters = EventFilters(
        start_from=start_from, start_to=start_to, search=search, event_type=event_type
    )
    try:
        records, total = events.list_approved(filters, limit, offset)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Event listing failed")
        raise HTTPException(status_code=500, detail=f"Listing failed: {e}")
    return {"events": records, "total": total}


@app.get("/events/mine", response_model=List[EventOut])
def my_events(
    caller: Caller = Depends(get_caller),
    events: EventService = Depends(get_event_service),
):
    try:
        return events.list_submitted(caller)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        logger.exception("Listing own events failed")
        raise HTTPException(status_code=500, detail=f"Listing failed: {e}")


@app.get("/events/{event_id}", response_model=EventOut)
def get_event(event_id: int, events: EventService = Depends(get_event_service)):
    try:
        return events.get_public(event_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Event lookup failed")
        raise HTTPException(status_code=500, detail=f"Lookup failed: {e}")


@app.patch("/events/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    changes: EventUpdate,
    caller: Caller = Depends(get_caller),
    events: EventService = Depends(get_event_service),
):
    try:
        return events.update(event_id, changes, caller)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Event update failed")
        raise HTTPException(status_code=500, detail=f"Update failed: {e}")


@app.delete("/events/{event_id}")
def delete_event(
    event_id: int,
    caller: Caller = Depends(get_caller),
    events: EventService = Depends(get_event_service),
):
    try:
        events.delete(event_id, caller)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Event delete failed")
        raise HTTPException(status_code=500, detail=f"Delete failed: {e}")
    return {"success": True, "message": "Event deleted"}


# --- moderation ------------------------------------------------------------

@app.get("/admin/events", response_model=EventPage)
def review_queue(
    status: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    caller: Caller = Depends(get_caller),
    mod: ModerationService = Depends(get_moderation_service),
):
    try:
        records, total = mod.list_for_review(caller, status, limit, offset)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Review queue failed")
        raise HTTPException(status_code=500, detail=f"Review queue failed: {e}")
    return {"events": records, "total": total}


@app.post("/admin/events/{event_id}/approve")
def approve_event(
    event_id: int,
    caller: Caller = Depends(get_caller),
    mod: ModerationService = Depends(get_moderation_service),
):
    try:
        mod.approve(event_id, caller)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Approve failed for event %s", event_id)
        raise HTTPException(status_code=500, detail=f"Approve failed: {e}")
    return {"success": True, "message": "Event approved and published"}


@app.post("/admin/events/{event_id}/reject")
def reject_event(
    event_id: int,
    body: RejectIn,
    caller: Caller = Depends(get_caller),
    mod: ModerationService = Depends(get_moderation_service),
):
    try:
        mod.reject(event_id, caller, body.reason)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Reject failed for event %s", event_id)
        raise HTTPException(status_code=500, detail=f"Reject failed: {e}")
    return {"success": True, "message": "Event rejected"}


# --- organizer access requests -----------------------------------------------

@app.post("/organizer-requests")
def submit_organizer_request(
    request: OrganizerRequestIn,
    reqs: OrganizerRequestService = Depends(get_request_service),
):
    try:
        new_id = reqs.submit(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Organizer request submission failed")
        raise HTTPException(status_code=500, detail=f"Submit failed: {e}")
    return {
        "success": True,
        "id": new_id,
        "message": "Your request has been submitted. We'll review it and contact you soon.",
    }


@app.get("/admin/organizer-requests", response_model=OrganizerRequestPage)
def pending_organizer_requests(
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    caller: Caller = Depends(get_caller),
    reqs: OrganizerRequestService = Depends(get_request_service),
):
    try:
        records, total = reqs.list_pending(caller, limit, offset)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        logger.exception("Organizer request listing failed")
        raise HTTPException(status_code=500, detail=f"Listing failed: {e}")
    return {"requests": records, "total": total}


@app.post("/admin/organizer-requests/{request_id}/approve", response_model=OrganizerRequestOut)
def approve_organizer_request(
    request_id: int,
    caller: Caller = Depends(get_caller),
    reqs: OrganizerRequestService = Depends(get_request_service),
):
    try:
        return reqs.approve(request_id, caller)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Approve failed for organizer request %s", request_id)
        raise HTTPException(status_code=500, detail=f"Approve failed: {e}")


@app.post("/admin/organizer-requests/{request_id}/reject", response_model=OrganizerRequestOut)
def reject_organizer_request(
    request_id: int,
    body: RejectIn,
    caller: Caller = Depends(get_caller),
    reqs: OrganizerRequestService = Depends(get_request_service),
):
    try:
        return reqs.reject(request_id, caller, body.reason)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Reject failed for organizer request %s", request_id)
        raise HTTPException(status_code=500, detail=f"Reject failed: {e}")


# --- feeds -----------------------------------------------------------------

def _feed_headers() -> dict:
    return {"Cache-Control": f"public, max-age={settings.feed_cache_seconds}"}


@app.get("/rss")
def rss_feed(events: EventService = Depends(get_event_service)):
    try:
        body = render_rss(events.feed_events(), settings.base_url)
    except Exception:
        logger.exception("RSS feed generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate RSS feed")
    return Response(
        content=body,
        media_type="application/rss+xml; charset=utf-8",
        headers=_feed_headers(),
    )


@app.get("/calendar.ics")
def calendar_feed(events: EventService = Depends(get_event_service)):
    try:
        body = render_ical(events.feed_events(), settings.base_url)
    except Exception:
        logger.exception("Calendar feed generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate calendar feed")
    headers = _feed_headers()
    headers["Content-Disposition"] = 'attachment; filename="events.ics"'
    return Response(content=body, media_type="text/calendar; charset=utf-8", headers=headers)
