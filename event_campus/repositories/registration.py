from datetime import datetime
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from event_campus.models.auth import UserOrm
from event_campus.models.event import EventOrm
from event_campus.models.registration import RegistrationOrm, RegistrationStatus




class RegistrationRepository:
    @classmethod
    async def create(cls, session: AsyncSession, registration: RegistrationOrm):
        """Insert a registration row"""
        session.add(registration)
        await session.flush()
        await session.refresh(registration)
        return registration


    @classmethod
    async def get_by_id(cls, session: AsyncSession, registration_id: int):
        """Get a registration by ID"""
        query = (
            select(RegistrationOrm)
            .where(RegistrationOrm.id == registration_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(query)
        return result.scalars().first()


    @classmethod
    async def get_latest_by_user_and_event(cls, session: AsyncSession, user_id: int, event_id: int):
        """Most recent registration attempt of a user for an event"""
        query = (
            select(RegistrationOrm)
            .where(
                RegistrationOrm.user_id == user_id,
                RegistrationOrm.event_id == event_id,
            )
            .order_by(RegistrationOrm.registered_at.desc(), RegistrationOrm.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(query)
        return result.scalars().first()


    @classmethod
    async def update(cls, session: AsyncSession, registration: RegistrationOrm):
        """Flush changes made to a loaded registration"""
        session.add(registration)
        await session.flush()
        return registration


    @classmethod
    async def cancel(cls, session: AsyncSession, registration_id: int, cancelled_at: datetime) -> bool:
        """Cancel a registration that is still registered or waitlisted"""
        stmt = (
            update(RegistrationOrm)
            .where(
                RegistrationOrm.id == registration_id,
                RegistrationOrm.status.in_([RegistrationStatus.REGISTERED, RegistrationStatus.WAITLIST]),
            )
            .values(status=RegistrationStatus.CANCELLED, cancelled_at=cancelled_at)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1


    @classmethod
    async def promote(cls, session: AsyncSession, registration_id: int) -> bool:
        """Move a waitlisted registration to registered; False if it is no longer waitlisted"""
        stmt = (
            update(RegistrationOrm)
            .where(
                RegistrationOrm.id == registration_id,
                RegistrationOrm.status == RegistrationStatus.WAITLIST,
            )
            .values(status=RegistrationStatus.REGISTERED)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1


    @classmethod
    async def set_status(cls, session: AsyncSession, registration_ids: list[int], from_status: str, to_status: str) -> int:
        """Bulk status transition, only for rows still in from_status"""
        if not registration_ids:
            return 0
        stmt = (
            update(RegistrationOrm)
            .where(
                RegistrationOrm.id.in_(registration_ids),
                RegistrationOrm.status == from_status,
            )
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount


    @classmethod
    async def mark_reminder_sent(cls, session: AsyncSession, registration_id: int):
        stmt = (
            update(RegistrationOrm)
            .where(RegistrationOrm.id == registration_id)
            .values(reminder_sent=True)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)


    @classmethod
    async def list_waitlist_by_event(cls, session: AsyncSession, event_id: int, limit: int = None):
        """Waitlisted registrations of an event in FIFO order"""
        query = (
            select(RegistrationOrm)
            .where(
                RegistrationOrm.event_id == event_id,
                RegistrationOrm.status == RegistrationStatus.WAITLIST,
            )
            .order_by(RegistrationOrm.registered_at.asc(), RegistrationOrm.id.asc())
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await session.execute(query)
        return result.scalars().all()


    @classmethod
    async def count_by_event_and_status(cls, session: AsyncSession, event_id: int, statuses: list[str]) -> int:
        """Number of registrations of an event in any of the given statuses"""
        query = (
            select(func.count())
            .select_from(RegistrationOrm)
            .where(
                RegistrationOrm.event_id == event_id,
                RegistrationOrm.status.in_(statuses),
            )
        )
        result = await session.execute(query)
        return result.scalar()


    @classmethod
    async def list_by_user(cls, session: AsyncSession, user_id: int):
        """A user's registrations, newest first, with event details"""
        query = (
            select(RegistrationOrm, EventOrm.title, EventOrm.start_date, EventOrm.status)
            .join(EventOrm, RegistrationOrm.event_id == EventOrm.id)
            .where(RegistrationOrm.user_id == user_id)
            .order_by(RegistrationOrm.registered_at.desc(), RegistrationOrm.id.desc())
        )
        result = await session.execute(query)

        return [
            {
                "registration": registration,
                "event_title": event_title,
                "event_start_date": event_start_date,
                "event_status": event_status,
            }
            for registration, event_title, event_start_date, event_status in result.all()
        ]


    @classmethod
    async def list_by_event(cls, session: AsyncSession, event_id: int, status: str = None):
        """Registrations of an event with participant details"""
        query = (
            select(RegistrationOrm, UserOrm.full_name, UserOrm.email, UserOrm.phone_number)
            .join(UserOrm, RegistrationOrm.user_id == UserOrm.id)
            .where(RegistrationOrm.event_id == event_id)
        )
        if status:
            query = query.where(RegistrationOrm.status == status)
        query = query.order_by(RegistrationOrm.registered_at.asc(), RegistrationOrm.id.asc())
        result = await session.execute(query)

        return [
            {
                "registration": registration,
                "user_name": full_name,
                "user_email": email,
                "user_phone": phone_number,
            }
            for registration, full_name, email, phone_number in result.all()
        ]


    @classmethod
    async def list_pending_reminders(cls, session: AsyncSession, event_id: int):
        """Registered participants who have not received the H-1 reminder yet"""
        query = (
            select(RegistrationOrm, UserOrm)
            .join(UserOrm, RegistrationOrm.user_id == UserOrm.id)
            .where(
                RegistrationOrm.event_id == event_id,
                RegistrationOrm.status == RegistrationStatus.REGISTERED,
                RegistrationOrm.reminder_sent.is_(False),
            )
            .order_by(RegistrationOrm.registered_at.asc())
        )
        result = await session.execute(query)
        return result.all()
