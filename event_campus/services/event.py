import logging
from datetime import datetime
from typing import Optional

from event_campus.database import new_session
from event_campus.models.event import EventOrm, EventStatus, EventType
from event_campus.repositories.event import EventRepository
from event_campus.schemas.event import SEventCreate, SEventFilter, SEventUpdate
from event_campus.services.registration import RegistrationService
from event_campus.utils.errors import NotFoundError, PermissionDeniedError, StateError, ValidationError
from event_campus.utils.locks import event_locks
from event_campus.utils.time import utcnow




logger = logging.getLogger(__name__)

# location, zoom_link and poster_url may be cleared with null; these may not
NON_NULLABLE_FIELDS = (
    "title", "description", "category", "event_type", "start_date", "end_date",
    "registration_deadline", "max_participants", "is_uii_only",
)


def _validate_schedule(start_date: datetime, end_date: datetime, registration_deadline: datetime):
    if end_date <= start_date:
        raise ValidationError("end date must be after start date")
    if registration_deadline >= start_date:
        raise ValidationError("registration deadline must be before start date")


def _validate_venue(event_type: str, location: Optional[str], zoom_link: Optional[str]):
    if event_type == EventType.OFFLINE and not location:
        raise ValidationError("location is required for offline events")
    if event_type == EventType.ONLINE and not zoom_link:
        raise ValidationError("zoom link is required for online events")


class EventService:
    @classmethod
    async def _get_owned_event(cls, session, organizer_id: int, event_id: int, action: str) -> EventOrm:
        event = await EventRepository.get_event_by_id(session, event_id)
        if not event:
            raise NotFoundError("event not found")
        if event.organizer_id != organizer_id:
            raise PermissionDeniedError(f"you don't have permission to {action} this event")
        return event


    @classmethod
    async def create_event(cls, organizer_id: int, event_data: SEventCreate) -> EventOrm:
        """Create a draft event"""
        if event_data.start_date <= utcnow():
            raise ValidationError("start date must be in the future")
        _validate_schedule(event_data.start_date, event_data.end_date, event_data.registration_deadline)
        if event_data.max_participants <= 0:
            raise ValidationError("max participants must be greater than 0")
        _validate_venue(event_data.event_type, event_data.location, event_data.zoom_link)

        async with new_session() as session, session.begin():
            event = await EventRepository.create_event(
                session,
                EventOrm(
                    organizer_id=organizer_id,
                    current_participants=0,
                    status=EventStatus.DRAFT,
                    **event_data.model_dump(),
                ),
            )

        logger.info("Event %s created by organizer %s", event.id, organizer_id)
        return event


    @classmethod
    async def get_event(cls, event_id: int) -> dict:
        """Event with its organizer name"""
        async with new_session() as session:
            event_data = await EventRepository.get_event_with_organizer(session, event_id)
        if not event_data:
            raise NotFoundError("event not found")
        return event_data


    @classmethod
    async def list_events(cls, event_filter: SEventFilter, page: int = 1, page_size: int = 20):
        """Paginated listing; only published events unless a status is asked for"""
        if event_filter.status is None:
            event_filter = event_filter.model_copy(update={"status": EventStatus.PUBLISHED})
        async with new_session() as session:
            return await EventRepository.list_events(session, event_filter, page, page_size)


    @classmethod
    async def get_organizer_events(cls, organizer_id: int, page: int = 1, page_size: int = 20):
        """Every event of an organizer regardless of status"""
        async with new_session() as session:
            return await EventRepository.list_events(
                session, SEventFilter(organizer_id=organizer_id), page, page_size
            )


    @classmethod
    async def update_event(cls, organizer_id: int, event_id: int, event_data: SEventUpdate) -> EventOrm:
        """Update an event; extra capacity is handed to the waitlist"""
        update_data = event_data.model_dump(exclude_unset=True)
        for field in NON_NULLABLE_FIELDS:
            if field in update_data and update_data[field] is None:
                raise ValidationError(f"{field.replace('_', ' ')} cannot be null")
        new_max = update_data.pop("max_participants", None)

        async with event_locks.hold(event_id):
            async with new_session() as session, session.begin():
                event = await cls._get_owned_event(session, organizer_id, event_id, "update")
                if event.status in (EventStatus.COMPLETED, EventStatus.CANCELLED):
                    raise StateError("cannot update completed or cancelled events")

                start_date = update_data.get("start_date", event.start_date)
                if "start_date" in update_data and start_date <= utcnow():
                    raise ValidationError("start date must be in the future")
                _validate_schedule(
                    start_date,
                    update_data.get("end_date", event.end_date),
                    update_data.get("registration_deadline", event.registration_deadline),
                )
                _validate_venue(
                    update_data.get("event_type", event.event_type),
                    update_data.get("location", event.location),
                    update_data.get("zoom_link", event.zoom_link),
                )

                old_max = event.max_participants
                if new_max is not None and new_max != old_max:
                    if not await EventRepository.set_max_participants(session, event_id, new_max):
                        raise ValidationError("cannot reduce max participants below current participants count")

                update_data["updated_at"] = utcnow()
                event = await EventRepository.update_event(session, event_id, update_data)

                promoted = []
                if new_max is not None and new_max > old_max and event.status == EventStatus.PUBLISHED:
                    promoted = await RegistrationService.promote_into_open_seats(
                        session, event_id, limit=new_max - old_max
                    )
                    event = await EventRepository.get_event_by_id(session, event_id)

        logger.info("Event %s updated by organizer %s", event_id, organizer_id)
        if promoted:
            await RegistrationService.notify_promoted(event, promoted)
        return event


    @classmethod
    async def delete_event(cls, organizer_id: int, event_id: int) -> str:
        """Delete a draft, cancel anything else. Returns the outcome."""
        async with event_locks.hold(event_id):
            async with new_session() as session, session.begin():
                event = await cls._get_owned_event(session, organizer_id, event_id, "delete")

                if event.status == EventStatus.DRAFT:
                    await EventRepository.delete_event(session, event_id)
                    outcome = "deleted"
                else:
                    if event.status == EventStatus.CANCELLED:
                        raise StateError("event is already cancelled")
                    await EventRepository.update_status(session, event_id, EventStatus.CANCELLED)
                    outcome = "cancelled"

        logger.info("Event %s %s by organizer %s", event_id, outcome, organizer_id)
        return outcome


    @classmethod
    async def publish_event(cls, organizer_id: int, event_id: int) -> EventOrm:
        """Publish a draft event. The poster is an externally hosted image URL (poster_url), uploads are not handled here."""
        async with new_session() as session, session.begin():
            event = await cls._get_owned_event(session, organizer_id, event_id, "publish")
            if event.status != EventStatus.DRAFT:
                raise StateError("event is not in draft status")
            if not event.poster_url:
                raise ValidationError("event must have a poster before publishing")

            if not await EventRepository.update_status(
                session, event_id, EventStatus.PUBLISHED, expected_status=EventStatus.DRAFT
            ):
                raise StateError("event is not in draft status")
            event = await EventRepository.get_event_by_id(session, event_id)

        logger.info("Event %s published", event_id)
        return event
