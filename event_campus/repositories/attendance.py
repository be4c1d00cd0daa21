from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from event_campus.models.attendance import AttendanceOrm
from event_campus.models.auth import UserOrm




class AttendanceRepository:
    @classmethod
    async def create(cls, session: AsyncSession, attendance: AttendanceOrm):
        """Insert one attendance record"""
        session.add(attendance)
        await session.flush()
        await session.refresh(attendance)
        return attendance


    @classmethod
    async def bulk_create(cls, session: AsyncSession, attendances: list[AttendanceOrm]):
        """Insert a batch of attendance records"""
        session.add_all(attendances)
        await session.flush()
        return attendances


    @classmethod
    async def get_by_event_and_user(cls, session: AsyncSession, event_id: int, user_id: int):
        """Attendance of a user at an event, if already marked"""
        query = select(AttendanceOrm).where(
            AttendanceOrm.event_id == event_id,
            AttendanceOrm.user_id == user_id,
        )
        result = await session.execute(query)
        return result.scalars().first()


    @classmethod
    async def list_marked_user_ids(cls, session: AsyncSession, event_id: int, user_ids: list[int]) -> set[int]:
        """Which of the given users already have attendance for the event"""
        if not user_ids:
            return set()
        query = select(AttendanceOrm.user_id).where(
            AttendanceOrm.event_id == event_id,
            AttendanceOrm.user_id.in_(user_ids),
        )
        result = await session.execute(query)
        return set(result.scalars().all())


    @classmethod
    async def list_by_event(cls, session: AsyncSession, event_id: int):
        """Attendance of an event with participant details"""
        query = (
            select(AttendanceOrm, UserOrm.full_name, UserOrm.email)
            .join(UserOrm, AttendanceOrm.user_id == UserOrm.id)
            .where(AttendanceOrm.event_id == event_id)
            .order_by(AttendanceOrm.marked_at.asc(), AttendanceOrm.id.asc())
        )
        result = await session.execute(query)

        return [
            {"attendance": attendance, "user_name": full_name, "user_email": email}
            for attendance, full_name, email in result.all()
        ]
