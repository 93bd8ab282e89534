"""
RSS 2.0 and iCalendar feeds of approved events.

Both renderers are pure: they take already-normalized event dicts (as
returned by `EventRepo`) and return the document text. Dates come from
`start_utc` / `end_utc` and are written in UTC (`...Z` in iCal, RFC-822
`GMT` in RSS).

Private and members-only events are listed, but their location is
replaced with a placeholder.
"""

from datetime import datetime, timedelta
from html import escape
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse
import xml.etree.ElementTree as ET

from icalendar import Calendar, Event as ICalEvent, vDuration

from settings import settings
from time_normalizer import DEFAULT_DURATION, ensure_utc, rfc822

MASKED_LOCATION = "Location details available upon request"
PRODID = "-//Community Events//Events Calendar//EN"


def display_location(event: Dict[str, Any]) -> str:
    if event.get("visibility") in ("private", "members"):
        return MASKED_LOCATION
    return event.get("location") or ""


def _host(base_url: str) -> str:
    return urlparse(base_url).netloc or "localhost"


def _item_description(event: Dict[str, Any]) -> str:
    location = escape(display_location(event))
    if event.get("visibility") == "public" and event.get("location_address"):
        location += f"<br/>Address: {escape(event['location_address'])}"

    parts = [
        f"<p><strong>{escape(event['organizer_name'])}</strong> is organizing this event.</p>",
        f"<p><strong>Date:</strong> {escape(rfc822(event['start_utc']))}</p>",
        f"<p><strong>Location:</strong> {location}</p>",
        f"<p><strong>Type:</strong> {escape(event['event_type'])}</p>",
    ]
    if event.get("event_url"):
        parts.append(f'<p><a href="{escape(event["event_url"])}">Learn More</a></p>')
    parts.append(f"<p>{escape(event['description'])}</p>")
    return "\n".join(parts)


def render_rss(
    events: Iterable[Dict[str, Any]],
    base_url: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Render approved events as an RSS 2.0 document."""

    base_url = (base_url or settings.base_url).rstrip("/")
    events = list(events)
    now = now or datetime.now().astimezone()
    updated = [e["updated_at"] for e in events if e.get("updated_at")]
    last_build = max(updated) if updated else now

    rss = ET.Element("rss", {"version": "2.0"})
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = f"{settings.site_name} - Events Calendar"
    ET.SubElement(channel, "link").text = base_url
    ET.SubElement(channel, "description").text = settings.site_description
    ET.SubElement(channel, "language").text = "en-us"
    ET.SubElement(channel, "lastBuildDate").text = rfc822(last_build)
    ET.SubElement(channel, "ttl").text = str(max(1, settings.feed_cache_seconds // 60))

    host = _host(base_url)
    for event in events:
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = event["name"]
        ET.SubElement(item, "link").text = f"{base_url}/events#event-{event['id']}"
        ET.SubElement(item, "guid", {"isPermaLink": "false"}).text = f"event-{event['id']}@{host}"
        ET.SubElement(item, "description").text = _item_description(event)
        ET.SubElement(item, "pubDate").text = rfc822(event.get("created_at") or event["submitted_at"])
        ET.SubElement(item, "category").text = event["event_type"]
        ET.SubElement(item, "category").text = event["visibility"]

    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(rss, encoding="unicode")


def render_ical(
    events: Iterable[Dict[str, Any]],
    base_url: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Render approved events as a subscribable VCALENDAR."""

    host = _host(base_url or settings.base_url)
    now = ensure_utc(now or datetime.now().astimezone())

    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", f"{settings.site_name} - Events")
    cal.add("x-wr-caldesc", settings.site_description)
    cal.add("x-wr-timezone", settings.calendar_timezone)
    refresh = vDuration(timedelta(seconds=settings.feed_cache_seconds))
    refresh.params["VALUE"] = "DURATION"
    cal.add("refresh-interval", refresh)

    for event in events:
        start = ensure_utc(event["start_utc"])
        end = ensure_utc(event["end_utc"]) if event.get("end_utc") else start + DEFAULT_DURATION

        vevent = ICalEvent()
        vevent.add("uid", f"event-{event['id']}@{host}")
        vevent.add("dtstamp", now)
        vevent.add("dtstart", start)
        vevent.add("dtend", end)
        vevent.add("summary", event["name"])
        vevent.add("description", event["description"])
        vevent.add("location", display_location(event))
        if event.get("event_url"):
            vevent.add("url", event["event_url"])
        if event.get("recurring_pattern"):
            # Label only; occurrences are not expanded into an RRULE.
            vevent.add("categories", [event["event_type"], f"recurring:{event['recurring_pattern']}"])
        else:
            vevent.add("categories", [event["event_type"]])
        vevent.add("status", "CONFIRMED")
        vevent.add("sequence", 0)
        cal.add_component(vevent)

    return cal.to_ical().decode("utf-8")
