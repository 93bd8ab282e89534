"""Tests for event moderation and organizer access requests."""

import pytest

from errors import ForbiddenError, NotFoundError, ValidationError
from models import OrganizerRequestIn


@pytest.fixture
def pending_id(service, user, event_in):
    return service.submit(event_in(), user).id


class TestApprove:
    def test_approve_stamps_approver(self, moderation, repo, admin, pending_id):
        moderation.approve(pending_id, admin)

        stored = repo.get_by_id(pending_id)
        assert stored["status"] == "approved"
        assert stored["approved_by"] == admin.user_id
        assert stored["approved_at"] is not None
        assert stored["rejection_reason"] is None

    def test_approve_twice_restamps(self, moderation, repo, admin, pending_id):
        moderation.approve(pending_id, admin)
        first = repo.get_by_id(pending_id)["approved_at"]
        moderation.approve(pending_id, admin)

        assert repo.get_by_id(pending_id)["approved_at"] >= first
        assert len(repo.updates) == 2

    def test_rejected_event_can_be_approved(self, moderation, repo, admin, pending_id):
        moderation.reject(pending_id, admin, "Duplicate listing")
        moderation.approve(pending_id, admin)

        stored = repo.get_by_id(pending_id)
        assert stored["status"] == "approved"
        assert stored["rejection_reason"] is None

    def test_requires_admin(self, moderation, representative, user, pending_id):
        for caller in (representative, user):
            with pytest.raises(ForbiddenError):
                moderation.approve(pending_id, caller)

    def test_missing_event(self, moderation, admin):
        with pytest.raises(NotFoundError):
            moderation.approve(42, admin)


class TestReject:
    def test_reject_records_reason(self, moderation, repo, admin, pending_id):
        moderation.reject(pending_id, admin, "  Not a community event ")

        stored = repo.get_by_id(pending_id)
        assert stored["status"] == "rejected"
        assert stored["approved_by"] == admin.user_id
        assert stored["rejection_reason"] == "Not a community event"

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_reason_required(self, moderation, repo, admin, pending_id, reason):
        with pytest.raises(ValidationError):
            moderation.reject(pending_id, admin, reason)
        assert repo.updates == []

    def test_approved_event_can_be_rejected(self, moderation, repo, service, admin, representative, event_in):
        approved = service.submit(event_in(), representative)
        moderation.reject(approved.id, admin, "Cancelled by organizer")
        assert repo.get_by_id(approved.id)["status"] == "rejected"

    def test_missing_event(self, moderation, admin):
        with pytest.raises(NotFoundError):
            moderation.reject(42, admin, "spam")


class TestReviewQueue:
    def test_lists_pending_and_rejected(self, moderation, service, admin, user, representative, event_in):
        a = service.submit(event_in(name="A"), user).id
        b = service.submit(event_in(name="B"), user).id
        service.submit(event_in(name="C"), representative)
        moderation.reject(a, admin, "spam")

        events, total = moderation.list_for_review(admin)
        assert total == 2
        assert {e["id"] for e in events} == {a, b}

        events, total = moderation.list_for_review(admin, status="rejected")
        assert [e["id"] for e in events] == [a]

    def test_invalid_status(self, moderation, admin):
        with pytest.raises(ValidationError):
            moderation.list_for_review(admin, status="approved")

    def test_requires_admin(self, moderation, user):
        with pytest.raises(ForbiddenError):
            moderation.list_for_review(user)


class TestOrganizerRequests:
    @pytest.fixture
    def request_in(self):
        return OrganizerRequestIn(
            email="chair@example.org",
            name="Pat Lee",
            organization_name="County Committee",
            organization_type="committee",
        )

    def test_submit_is_pending(self, request_service, request_repo, request_in):
        new_id = request_service.submit(request_in)
        assert request_repo.get_by_id(new_id)["status"] == "pending"

    def test_blank_name_rejected(self, request_service, request_in):
        with pytest.raises(ValidationError):
            request_service.submit(request_in.model_copy(update={"organization_name": " "}))

    def test_approve_and_reject(self, request_service, admin, request_in):
        first = request_service.submit(request_in)
        second = request_service.submit(request_in)

        approved = request_service.approve(first, admin)
        rejected = request_service.reject(second, admin, "Unknown organization")

        assert (approved["status"], approved["approved_by"]) == ("approved", admin.user_id)
        assert rejected["rejection_reason"] == "Unknown organization"
        pending, total = request_service.list_pending(admin)
        assert (pending, total) == ([], 0)

    def test_reject_needs_reason(self, request_service, admin, request_in):
        new_id = request_service.submit(request_in)
        with pytest.raises(ValidationError):
            request_service.reject(new_id, admin, "")

    def test_admin_only(self, request_service, representative, request_in):
        new_id = request_service.submit(request_in)
        with pytest.raises(ForbiddenError):
            request_service.approve(new_id, representative)
        with pytest.raises(ForbiddenError):
            request_service.list_pending(representative)

    def test_missing(self, request_service, admin):
        with pytest.raises(NotFoundError):
            request_service.approve(7, admin)
