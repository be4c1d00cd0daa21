from datetime import datetime
from sqlalchemy import select, delete, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from event_campus.models.auth import UserOrm
from event_campus.models.event import EventOrm
from event_campus.schemas.event import SEventFilter




class EventRepository:
    @classmethod
    async def create_event(cls, session: AsyncSession, event: EventOrm):
        """Persist a new event"""
        session.add(event)
        await session.flush()
        await session.refresh(event)
        return event


    @classmethod
    async def get_event_by_id(cls, session: AsyncSession, event_id: int):
        """Get an event by ID, always re-read from the database"""
        query = select(EventOrm).where(EventOrm.id == event_id).execution_options(populate_existing=True)
        result = await session.execute(query)
        return result.scalars().first()


    @classmethod
    async def get_event_with_organizer(cls, session: AsyncSession, event_id: int):
        """Get an event together with its organizer's name"""
        query = (
            select(EventOrm, UserOrm.full_name)
            .join(UserOrm, EventOrm.organizer_id == UserOrm.id, isouter=True)
            .where(EventOrm.id == event_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(query)
        row = result.first()
        if not row:
            return None

        event, organizer_name = row
        return {"event": event, "organizer_name": organizer_name}


    @classmethod
    async def list_events(cls, session: AsyncSession, event_filter: SEventFilter, page: int = 1, page_size: int = 20):
        """Paginated event list with organizer names"""
        base_query = (
            select(EventOrm, UserOrm.full_name)
            .join(UserOrm, EventOrm.organizer_id == UserOrm.id, isouter=True)
        )
        count_query = select(func.count()).select_from(EventOrm)

        conditions = []
        if event_filter.status is not None:
            conditions.append(EventOrm.status == event_filter.status)
        if event_filter.category is not None:
            conditions.append(EventOrm.category == event_filter.category)
        if event_filter.is_uii_only is not None:
            conditions.append(EventOrm.is_uii_only == event_filter.is_uii_only)
        if event_filter.organizer_id is not None:
            conditions.append(EventOrm.organizer_id == event_filter.organizer_id)
        if event_filter.start_from is not None:
            conditions.append(EventOrm.start_date >= event_filter.start_from)
        if event_filter.start_until is not None:
            conditions.append(EventOrm.start_date < event_filter.start_until)

        if conditions:
            base_query = base_query.where(*conditions)
            count_query = count_query.where(*conditions)

        total_count_result = await session.execute(count_query)
        total_count = total_count_result.scalar()

        offset = (page - 1) * page_size
        events_query = base_query.order_by(EventOrm.start_date.asc(), EventOrm.id.asc()).offset(offset).limit(page_size)
        events_result = await session.execute(events_query)

        events = [
            {"event": event, "organizer_name": organizer_name}
            for event, organizer_name in events_result.all()
        ]
        return events, total_count


    @classmethod
    async def list_events_by_status(cls, session: AsyncSession, statuses: list[str]):
        """All events in the given statuses (used by the periodic sweeps)"""
        query = select(EventOrm).where(EventOrm.status.in_(statuses)).order_by(EventOrm.start_date.asc())
        result = await session.execute(query)
        return result.scalars().all()


    @classmethod
    async def update_event(cls, session: AsyncSession, event_id: int, update_data: dict):
        """Update plain event fields"""
        if update_data:
            stmt = (
                update(EventOrm)
                .where(EventOrm.id == event_id)
                .values(**update_data)
                .execution_options(synchronize_session=False)
            )
            await session.execute(stmt)
        return await cls.get_event_by_id(session, event_id)


    @classmethod
    async def update_status(cls, session: AsyncSession, event_id: int, status: str, expected_status: str = None):
        """Set the event status; with expected_status only if the event is still in that status"""
        stmt = update(EventOrm).where(EventOrm.id == event_id)
        if expected_status is not None:
            stmt = stmt.where(EventOrm.status == expected_status)
        stmt = stmt.values(status=status).execution_options(synchronize_session=False)
        result = await session.execute(stmt)
        return result.rowcount > 0


    @classmethod
    async def delete_event(cls, session: AsyncSession, event_id: int):
        """Hard-delete an event"""
        result = await session.execute(delete(EventOrm).where(EventOrm.id == event_id))
        return result.rowcount > 0


    @classmethod
    async def conditional_increment_participants(cls, session: AsyncSession, event_id: int) -> bool:
        """Take one seat if one is free. Single statement, so concurrent callers cannot overbook."""
        stmt = (
            update(EventOrm)
            .where(
                EventOrm.id == event_id,
                EventOrm.current_participants < EventOrm.max_participants,
            )
            .values(current_participants=EventOrm.current_participants + 1)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1


    @classmethod
    async def decrement_participants(cls, session: AsyncSession, event_id: int) -> bool:
        """Release one seat; never goes below zero"""
        stmt = (
            update(EventOrm)
            .where(
                EventOrm.id == event_id,
                EventOrm.current_participants > 0,
            )
            .values(current_participants=EventOrm.current_participants - 1)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1


    @classmethod
    async def set_max_participants(cls, session: AsyncSession, event_id: int, max_participants: int) -> bool:
        """Change capacity unless that would put it below the seats already taken"""
        stmt = (
            update(EventOrm)
            .where(
                EventOrm.id == event_id,
                EventOrm.current_participants <= max_participants,
            )
            .values(max_participants=max_participants)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1


    @classmethod
    async def list_events_starting_between(cls, session: AsyncSession, status: str, start: datetime, end: datetime):
        """Events in a status whose start falls in [start, end)"""
        query = (
            select(EventOrm)
            .where(
                EventOrm.status == status,
                EventOrm.start_date >= start,
                EventOrm.start_date < end,
            )
            .order_by(EventOrm.start_date.asc())
        )
        result = await session.execute(query)
        return result.scalars().all()
