import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from event_campus.database import new_session
from event_campus.models.attendance import AttendanceOrm
from event_campus.models.registration import RegistrationStatus
from event_campus.repositories.attendance import AttendanceRepository
from event_campus.repositories.event import EventRepository
from event_campus.repositories.registration import RegistrationRepository
from event_campus.utils.errors import NotFoundError, PermissionDeniedError, StateError, ValidationError
from event_campus.utils.locks import event_locks
from event_campus.utils.time import utcnow




logger = logging.getLogger(__name__)


class AttendanceService:
    @classmethod
    async def _get_started_event(cls, session: AsyncSession, organizer_id: int, event_id: int):
        event = await EventRepository.get_event_by_id(session, event_id)
        if not event:
            raise NotFoundError("event not found")
        if event.organizer_id != organizer_id:
            raise PermissionDeniedError("you are not the organizer of this event")
        if not event.has_started(utcnow()):
            raise StateError("cannot mark attendance before event starts")
        return event


    @classmethod
    async def mark_attendance(
        cls, organizer_id: int, event_id: int, user_id: int, notes: Optional[str] = None
    ) -> AttendanceOrm:
        """Check in one participant; the registration becomes attended"""
        async with event_locks.hold(event_id):
            async with new_session() as session, session.begin():
                await cls._get_started_event(session, organizer_id, event_id)

                registration = await RegistrationRepository.get_latest_by_user_and_event(session, user_id, event_id)
                if not registration:
                    raise NotFoundError("user is not registered for this event")
                if registration.status != RegistrationStatus.REGISTERED:
                    raise StateError("user registration is not active")
                if await AttendanceRepository.get_by_event_and_user(session, event_id, user_id):
                    raise StateError("attendance already marked for this user")

                attendance = await AttendanceRepository.create(
                    session,
                    AttendanceOrm(
                        event_id=event_id,
                        user_id=user_id,
                        registration_id=registration.id,
                        marked_at=utcnow(),
                        marked_by=organizer_id,
                        notes=notes,
                    ),
                )
                registration.status = RegistrationStatus.ATTENDED
                await RegistrationRepository.update(session, registration)

        logger.info("Attendance marked for user %s at event %s (registration %s)", user_id, event_id, registration.id)
        return attendance


    @classmethod
    async def bulk_mark_attendance(cls, organizer_id: int, event_id: int, user_ids: list[int]) -> int:
        """Check in many participants at once, skipping the ones that cannot be marked"""
        async with event_locks.hold(event_id):
            async with new_session() as session, session.begin():
                await cls._get_started_event(session, organizer_id, event_id)

                unique_ids = list(dict.fromkeys(user_ids))
                already_marked = await AttendanceRepository.list_marked_user_ids(session, event_id, unique_ids)

                now = utcnow()
                attendances = []
                for user_id in unique_ids:
                    if user_id in already_marked:
                        continue
                    registration = await RegistrationRepository.get_latest_by_user_and_event(session, user_id, event_id)
                    if not registration or registration.status != RegistrationStatus.REGISTERED:
                        continue
                    attendances.append(
                        AttendanceOrm(
                            event_id=event_id,
                            user_id=user_id,
                            registration_id=registration.id,
                            marked_at=now,
                            marked_by=organizer_id,
                        )
                    )

                if not attendances:
                    raise ValidationError("no valid attendances to mark")

                await AttendanceRepository.bulk_create(session, attendances)
                await RegistrationRepository.set_status(
                    session,
                    [a.registration_id for a in attendances],
                    RegistrationStatus.REGISTERED,
                    RegistrationStatus.ATTENDED,
                )

        logger.info("Bulk attendance marked for %s users at event %s", len(attendances), event_id)
        return len(attendances)


    @classmethod
    async def get_event_attendance(cls, organizer_id: int, event_id: int) -> list[dict]:
        """Attendance list of an event, visible to its organizer only"""
        async with new_session() as session:
            event = await EventRepository.get_event_by_id(session, event_id)
            if not event:
                raise NotFoundError("event not found")
            if event.organizer_id != organizer_id:
                raise PermissionDeniedError("you are not the organizer of this event")
            return await AttendanceRepository.list_by_event(session, event_id)
