"""
Organizer access requests.

Anyone can ask to become an event organizer; an admin reviews the request
and, outside this service, grants the representative role. Approve and
reject stamp the request the same unconditional way event moderation does.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from auth import Caller, require_admin
from errors import NotFoundError, ValidationError
from models import OrganizerRequestIn
from repo_requests import OrganizerRequestRepo
from service_events import clamp_limit, utcnow

logger = logging.getLogger(__name__)


class OrganizerRequestService:
    def __init__(self, repo: OrganizerRequestRepo):
        self.repo = repo

    def submit(self, request: OrganizerRequestIn) -> int:
        fields = request.model_dump()
        for name in ("email", "name", "organization_name"):
            if not fields[name].strip():
                raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required")
        if "@" not in fields["email"]:
            raise ValidationError("Valid email required")

        fields["status"] = "pending"
        new_id = self.repo.insert(fields)
        logger.info("Organizer request %s from %s (%s)", new_id, fields["email"], fields["organization_name"])
        return new_id

    def list_pending(
        self, caller: Caller, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[List[Dict[str, Any]], int]:
        require_admin(caller)
        return self.repo.list_pending(clamp_limit(limit), max(0, offset))

    def _require(self, request_id: int) -> Dict[str, Any]:
        found = self.repo.get_by_id(request_id)
        if found is None:
            raise NotFoundError("Request not found")
        return found

    def approve(self, request_id: int, caller: Caller) -> Dict[str, Any]:
        require_admin(caller)
        self._require(request_id)
        self.repo.update(
            request_id,
            {
                "status": "approved",
                "approved_by": caller.user_id,
                "approved_at": utcnow(),
                "rejection_reason": None,
            },
        )
        logger.info("Organizer request %s approved by %s", request_id, caller.user_id)
        return self.repo.get_by_id(request_id)

    def reject(self, request_id: int, caller: Caller, reason: str) -> Dict[str, Any]:
        require_admin(caller)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason required")
        self._require(request_id)
        self.repo.update(
            request_id,
            {
                "status": "rejected",
                "approved_by": caller.user_id,
                "approved_at": utcnow(),
                "rejection_reason": reason,
            },
        )
        logger.info("Organizer request %s rejected by %s", request_id, caller.user_id)
        return self.repo.get_by_id(request_id)
