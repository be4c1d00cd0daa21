from datetime import datetime
from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from event_campus.models.auth import UserOrm
from event_campus.models.whitelist import WhitelistRequestOrm, WhitelistStatus




class WhitelistRepository:
    @classmethod
    async def create(cls, session: AsyncSession, request: WhitelistRequestOrm):
        """Insert a whitelist request"""
        session.add(request)
        await session.flush()
        await session.refresh(request)
        return request


    @classmethod
    async def get_by_id(cls, session: AsyncSession, request_id: int):
        """Get a whitelist request by ID"""
        query = select(WhitelistRequestOrm).where(WhitelistRequestOrm.id == request_id)
        result = await session.execute(query)
        return result.scalars().first()


    @classmethod
    async def get_latest_by_user(cls, session: AsyncSession, user_id: int):
        """The user's most recent whitelist request"""
        query = (
            select(WhitelistRequestOrm)
            .where(WhitelistRequestOrm.user_id == user_id)
            .order_by(WhitelistRequestOrm.submitted_at.desc(), WhitelistRequestOrm.id.desc())
            .limit(1)
        )
        result = await session.execute(query)
        return result.scalars().first()


    @classmethod
    async def list_requests(cls, session: AsyncSession, status: Optional[str] = None):
        """Whitelist requests with applicant details, oldest first"""
        query = (
            select(WhitelistRequestOrm, UserOrm.full_name, UserOrm.email)
            .join(UserOrm, WhitelistRequestOrm.user_id == UserOrm.id)
        )
        if status:
            query = query.where(WhitelistRequestOrm.status == status)
        query = query.order_by(WhitelistRequestOrm.submitted_at.asc(), WhitelistRequestOrm.id.asc())
        result = await session.execute(query)

        return [
            {"request": request, "user_name": full_name, "user_email": email}
            for request, full_name, email in result.all()
        ]


    @classmethod
    async def review(
        cls,
        session: AsyncSession,
        request_id: int,
        status: str,
        admin_notes: Optional[str],
        reviewer_id: int,
        reviewed_at: datetime,
    ) -> bool:
        """Record a review; only pending requests can be reviewed"""
        stmt = (
            update(WhitelistRequestOrm)
            .where(
                WhitelistRequestOrm.id == request_id,
                WhitelistRequestOrm.status == WhitelistStatus.PENDING,
            )
            .values(
                status=status,
                admin_notes=admin_notes,
                reviewed_by=reviewer_id,
                reviewed_at=reviewed_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1
