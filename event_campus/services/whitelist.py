import logging
from typing import Optional

from event_campus.database import new_session
from event_campus.models.auth import UserRole
from event_campus.models.whitelist import WhitelistRequestOrm, WhitelistStatus
from event_campus.repositories.auth import UserRepository
from event_campus.repositories.whitelist import WhitelistRepository
from event_campus.schemas.whitelist import SWhitelistReview, SWhitelistSubmit
from event_campus.services.notifications import notifier
from event_campus.utils.errors import NotFoundError, PermissionDeniedError, StateError, ValidationError
from event_campus.utils.time import utcnow




logger = logging.getLogger(__name__)


class WhitelistService:
    """Organizer approval workflow: a mahasiswa asks, an admin decides"""

    @classmethod
    async def submit_request(cls, user_id: int, request_data: SWhitelistSubmit) -> WhitelistRequestOrm:
        async with new_session() as session, session.begin():
            user = await UserRepository.get_user_by_id(session, user_id)
            if not user:
                raise NotFoundError("user not found")
            if user.role != UserRole.MAHASISWA:
                raise PermissionDeniedError("only mahasiswa can submit whitelist request")

            latest = await WhitelistRepository.get_latest_by_user(session, user_id)
            if latest and latest.status == WhitelistStatus.PENDING:
                raise StateError("you already have a pending request")

            request = await WhitelistRepository.create(
                session,
                WhitelistRequestOrm(
                    user_id=user_id,
                    organization_name=request_data.organization_name,
                    document_url=request_data.document_url,
                    status=WhitelistStatus.PENDING,
                    submitted_at=utcnow(),
                ),
            )

        logger.info("Whitelist request %s submitted by user %s", request.id, user_id)
        return request


    @classmethod
    async def get_my_request(cls, user_id: int) -> WhitelistRequestOrm:
        async with new_session() as session:
            request = await WhitelistRepository.get_latest_by_user(session, user_id)
        if not request:
            raise NotFoundError("no whitelist request found")
        return request


    @classmethod
    async def list_requests(cls, status: Optional[str] = None) -> list[dict]:
        if status is not None and status not in (
            WhitelistStatus.PENDING,
            WhitelistStatus.APPROVED,
            WhitelistStatus.REJECTED,
        ):
            raise ValidationError(f"unknown request status '{status}'")
        async with new_session() as session:
            return await WhitelistRepository.list_requests(session, status)


    @classmethod
    async def review_request(cls, admin_id: int, request_id: int, review: SWhitelistReview) -> WhitelistRequestOrm:
        """Approve or reject a pending request; approval makes the user an organizer"""
        new_status = WhitelistStatus.APPROVED if review.approved else WhitelistStatus.REJECTED

        async with new_session() as session, session.begin():
            request = await WhitelistRepository.get_by_id(session, request_id)
            if not request:
                raise NotFoundError("request not found")
            if request.status != WhitelistStatus.PENDING:
                raise StateError("request has already been reviewed")

            user = await UserRepository.get_user_by_id(session, request.user_id)
            if not user:
                raise NotFoundError("user not found")

            if not await WhitelistRepository.review(
                session, request_id, new_status, review.admin_notes, admin_id, utcnow()
            ):
                raise StateError("request has already been reviewed")
            if review.approved:
                await UserRepository.update_role(session, user.id, UserRole.ORGANISASI, True)

            await session.refresh(request)

        logger.info("Whitelist request %s %s by admin %s", request_id, new_status, admin_id)
        if review.approved:
            notifier.dispatch(
                notifier.sender.send_whitelist_approval(user.email, user.full_name, request.organization_name),
                f"whitelist approval #{request_id}",
            )
        else:
            notifier.dispatch(
                notifier.sender.send_whitelist_rejection(
                    user.email, user.full_name, request.organization_name, review.admin_notes
                ),
                f"whitelist rejection #{request_id}",
            )
        return request
