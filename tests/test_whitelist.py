"""
Organizer whitelist workflow tests.
"""
import pytest

from event_campus.database import new_session
from event_campus.models.auth import UserRole
from event_campus.models.whitelist import WhitelistStatus
from event_campus.repositories.auth import UserRepository
from event_campus.schemas.whitelist import SWhitelistReview, SWhitelistSubmit
from event_campus.services.notifications import notifier
from event_campus.services.whitelist import WhitelistService
from event_campus.utils.errors import NotFoundError, PermissionDeniedError, StateError


SUBMISSION = SWhitelistSubmit(organization_name="HMTI UII", document_url="https://docs.example.com/sk.pdf")


@pytest.fixture
async def admin(make_user):
    return await make_user(email="admin@uii.ac.id", role=UserRole.ADMIN, is_approved=True)


async def reload_user(user_id):
    async with new_session() as session:
        return await UserRepository.get_user_by_id(session, user_id)


class TestSubmit:
    async def test_mahasiswa_submits(self, make_user):
        user = await make_user()

        request = await WhitelistService.submit_request(user.id, SUBMISSION)

        assert request.status == WhitelistStatus.PENDING
        assert (await WhitelistService.get_my_request(user.id)).id == request.id

    async def test_one_pending_request_at_a_time(self, make_user):
        user = await make_user()
        await WhitelistService.submit_request(user.id, SUBMISSION)

        with pytest.raises(StateError, match="you already have a pending request"):
            await WhitelistService.submit_request(user.id, SUBMISSION)

    async def test_only_mahasiswa(self, organizer):
        with pytest.raises(PermissionDeniedError, match="only mahasiswa can submit whitelist request"):
            await WhitelistService.submit_request(organizer.id, SUBMISSION)

    async def test_no_request_yet(self, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await WhitelistService.get_my_request(user.id)


class TestReview:
    async def test_approval_makes_organizer(self, make_user, admin, sender):
        user = await make_user()
        request = await WhitelistService.submit_request(user.id, SUBMISSION)

        reviewed = await WhitelistService.review_request(admin.id, request.id, SWhitelistReview(approved=True))
        await notifier.drain()

        assert reviewed.status == WhitelistStatus.APPROVED
        assert reviewed.reviewed_by == admin.id
        refreshed = await reload_user(user.id)
        assert refreshed.role == UserRole.ORGANISASI
        assert refreshed.can_create_event()
        assert len(sender.of_kind("whitelist_approval", user.email)) == 1

    async def test_rejection_keeps_role(self, make_user, admin, sender):
        user = await make_user()
        request = await WhitelistService.submit_request(user.id, SUBMISSION)

        reviewed = await WhitelistService.review_request(
            admin.id, request.id, SWhitelistReview(approved=False, admin_notes="dokumen kurang")
        )
        await notifier.drain()

        assert reviewed.status == WhitelistStatus.REJECTED
        assert reviewed.admin_notes == "dokumen kurang"
        assert (await reload_user(user.id)).role == UserRole.MAHASISWA
        assert len(sender.of_kind("whitelist_rejection", user.email)) == 1

        # a rejected applicant may try again
        await WhitelistService.submit_request(user.id, SUBMISSION)

    async def test_review_only_once(self, make_user, admin):
        user = await make_user()
        request = await WhitelistService.submit_request(user.id, SUBMISSION)
        await WhitelistService.review_request(admin.id, request.id, SWhitelistReview(approved=False))

        with pytest.raises(StateError, match="request has already been reviewed"):
            await WhitelistService.review_request(admin.id, request.id, SWhitelistReview(approved=True))

    async def test_list_by_status(self, make_user, admin):
        first, second = await make_user(), await make_user()
        r1 = await WhitelistService.submit_request(first.id, SUBMISSION)
        await WhitelistService.submit_request(second.id, SUBMISSION)
        await WhitelistService.review_request(admin.id, r1.id, SWhitelistReview(approved=True))

        pending = await WhitelistService.list_requests(WhitelistStatus.PENDING)
        everything = await WhitelistService.list_requests()

        assert [p["user_email"] for p in pending] == [second.email]
        assert len(everything) == 2
