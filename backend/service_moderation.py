"""
Moderation of submitted events.

Approve and reject are plain overwrites of the status columns: there is no
transition check, so a rejected event can be approved later (and the other
way round), and approving twice re-stamps the approver and time. The
record invariants still hold after every call:

- `approved_by` / `approved_at` are set once an event is approved or rejected
- `rejection_reason` is set only while the event is rejected
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from auth import Caller, require_admin
from errors import NotFoundError, ValidationError
from repo_events import EventRepo
from service_events import utcnow, clamp_limit

logger = logging.getLogger(__name__)

REVIEW_STATUSES = ("pending", "rejected")


class ModerationService:
    def __init__(self, repo: EventRepo):
        self.repo = repo

    def _require_event(self, event_id: int) -> Dict[str, Any]:
        event = self.repo.get_by_id(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def approve(self, event_id: int, caller: Caller) -> None:
        require_admin(caller)
        self._require_event(event_id)
        self.repo.update(
            event_id,
            {
                "status": "approved",
                "approved_by": caller.user_id,
                "approved_at": utcnow(),
                "rejection_reason": None,
            },
        )
        logger.info("Event %s approved by %s", event_id, caller.user_id)

    def reject(self, event_id: int, caller: Caller, reason: str) -> None:
        require_admin(caller)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason required")
        self._require_event(event_id)
        self.repo.update(
            event_id,
            {
                "status": "rejected",
                "approved_by": caller.user_id,
                "approved_at": utcnow(),
                "rejection_reason": reason,
            },
        )
        logger.info("Event %s rejected by %s: %s", event_id, caller.user_id, reason)

    def list_for_review(
        self,
        caller: Caller,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Moderation queue, newest submission first.

        `status` narrows to "pending" or "rejected"; None lists both.
        """

        require_admin(caller)
        if status is not None and status not in REVIEW_STATUSES:
            raise ValidationError(f"Invalid review status: {status}")
        statuses = [status] if status else list(REVIEW_STATUSES)
        return self.repo.list_by_status(
            statuses, None, clamp_limit(limit), max(0, offset), newest_first=True
        )
