import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from event_campus.database import new_session
from event_campus.models.event import EventOrm
from event_campus.models.registration import RegistrationOrm, RegistrationStatus
from event_campus.repositories.auth import UserRepository
from event_campus.repositories.event import EventRepository
from event_campus.repositories.registration import RegistrationRepository
from event_campus.services.notifications import notifier
from event_campus.utils.errors import NotFoundError, PermissionDeniedError, StateError, ValidationError
from event_campus.utils.locks import event_locks
from event_campus.utils.time import utcnow




logger = logging.getLogger(__name__)


class RegistrationService:
    """Registration, cancellation and waitlist promotion for events.

    Every mutation of ``current_participants`` or of a registration status
    happens under the event's lock and inside one database transaction.
    The seat itself is taken with a conditional UPDATE, so the counter never
    exceeds capacity even when several processes share the database.
    Notifications go out after commit, once the lock is released.
    """

    @classmethod
    async def register_for_event(cls, user_id: int, event_id: int) -> dict:
        """Register a user, or put them on the waitlist when the event is full"""
        async with event_locks.hold(event_id):
            async with new_session() as session, session.begin():
                event = await EventRepository.get_event_by_id(session, event_id)
                if not event:
                    raise NotFoundError("event not found")
                if not event.can_register(utcnow()):
                    raise StateError("registration is closed for this event")

                user = await UserRepository.get_user_by_id(session, user_id)
                if not user:
                    raise NotFoundError("user not found")
                if event.is_uii_only and not user.is_uii_civitas:
                    raise PermissionDeniedError("this event is only for UII civitas")

                latest = await RegistrationRepository.get_latest_by_user_and_event(session, user_id, event_id)
                if latest and latest.status == RegistrationStatus.WAITLIST:
                    raise StateError("you are already in the waitlist for this event")
                if latest and latest.status != RegistrationStatus.CANCELLED:
                    raise StateError("you are already registered for this event")

                seat_taken = await EventRepository.conditional_increment_participants(session, event_id)
                status = RegistrationStatus.REGISTERED if seat_taken else RegistrationStatus.WAITLIST
                registration = await RegistrationRepository.create(
                    session,
                    RegistrationOrm(event_id=event_id, user_id=user_id, status=status, registered_at=utcnow()),
                )

                waitlist_position = None
                if not seat_taken:
                    waitlist_position = await RegistrationRepository.count_by_event_and_status(
                        session, event_id, [RegistrationStatus.WAITLIST]
                    )

        if seat_taken:
            logger.info("User %s registered for event %s (registration %s)", user_id, event_id, registration.id)
            notifier.dispatch(
                notifier.sender.send_registration_confirmation(
                    user.email, user.full_name, event.title, event.start_date, registration.id
                ),
                f"registration confirmation #{registration.id}",
            )
            message = "successfully registered for event"
        else:
            logger.info(
                "User %s waitlisted for event %s at position %s (registration %s)",
                user_id, event_id, waitlist_position, registration.id,
            )
            notifier.dispatch(
                notifier.sender.send_waitlist_notification(
                    user.email, user.full_name, event.title, waitlist_position
                ),
                f"waitlist notice #{registration.id}",
            )
            message = f"event is full, you are #{waitlist_position} in the waitlist"

        return {"registration": registration, "waitlist_position": waitlist_position, "message": message}


    @classmethod
    async def cancel_registration(cls, user_id: int, registration_id: int) -> RegistrationOrm:
        """Cancel a registration and hand a freed seat to the waitlist"""
        async with new_session() as session:
            registration = await RegistrationRepository.get_by_id(session, registration_id)
        if not registration:
            raise NotFoundError("registration not found")
        if registration.user_id != user_id:
            raise PermissionDeniedError("you don't have permission to cancel this registration")

        event_id = registration.event_id
        async with event_locks.hold(event_id):
            async with new_session() as session, session.begin():
                # re-read under the lock, the row may have changed meanwhile
                registration = await RegistrationRepository.get_by_id(session, registration_id)
                if not registration.can_cancel():
                    raise StateError("cannot cancel this registration")

                held_seat = registration.holds_seat()
                if not await RegistrationRepository.cancel(session, registration_id, utcnow()):
                    raise StateError("cannot cancel this registration")
                if held_seat and not await EventRepository.decrement_participants(session, event_id):
                    logger.warning("Event %s counter was already zero when cancelling registration %s",
                                   event_id, registration_id)

                event = await EventRepository.get_event_by_id(session, event_id)
                user = await UserRepository.get_user_by_id(session, user_id)
                registration = await RegistrationRepository.get_by_id(session, registration_id)

            logger.info("Registration %s for event %s cancelled", registration_id, event_id)

            promoted = []
            if held_seat:
                try:
                    async with new_session() as session, session.begin():
                        promoted = await cls.promote_into_open_seats(session, event_id, limit=1)
                except Exception:
                    logger.exception(
                        "Waitlist promotion for event %s failed after cancelling registration %s",
                        event_id, registration_id,
                    )
                    promoted = []

        if promoted:
            await cls.notify_promoted(event, promoted)
        if user:
            notifier.dispatch(
                notifier.sender.send_cancellation_confirmation(user.email, user.full_name, event.title),
                f"cancellation confirmation #{registration_id}",
            )
        return registration


    @classmethod
    async def promote_into_open_seats(
        cls, session: AsyncSession, event_id: int, limit: Optional[int] = None
    ) -> list[RegistrationOrm]:
        """Promote waitlisted registrations FIFO while seats are free.

        Runs inside the caller's transaction and under the caller's event
        lock. Returns the promoted registrations.
        """
        promoted = []
        for candidate in await RegistrationRepository.list_waitlist_by_event(session, event_id, limit=limit):
            if not await EventRepository.conditional_increment_participants(session, event_id):
                break
            if not await RegistrationRepository.promote(session, candidate.id):
                # row left the waitlist since it was read; give the seat back
                await EventRepository.decrement_participants(session, event_id)
                continue
            candidate.status = RegistrationStatus.REGISTERED
            promoted.append(candidate)
            logger.info("Registration %s promoted from waitlist for event %s", candidate.id, event_id)
        return promoted


    @classmethod
    async def fill_open_seats(cls, event_id: int) -> int:
        """Promote as many waitlisted registrations as there are free seats"""
        async with event_locks.hold(event_id):
            async with new_session() as session, session.begin():
                event = await EventRepository.get_event_by_id(session, event_id)
                if not event or event.is_full():
                    return 0
                promoted = await cls.promote_into_open_seats(session, event_id, limit=event.available_slots)

        if promoted:
            await cls.notify_promoted(event, promoted)
        return len(promoted)


    @classmethod
    async def notify_promoted(cls, event: EventOrm, promoted: list[RegistrationOrm]):
        """Send the promotion email to every promoted participant"""
        async with new_session() as session:
            users = await UserRepository.get_users_by_ids(session, [r.user_id for r in promoted])

        for registration in promoted:
            user = users.get(registration.user_id)
            if not user:
                logger.warning("Promoted registration %s has no user %s", registration.id, registration.user_id)
                continue
            notifier.dispatch(
                notifier.sender.send_waitlist_promotion(
                    user.email, user.full_name, event.title, event.start_date, registration.id
                ),
                f"waitlist promotion #{registration.id}",
            )


    @classmethod
    async def get_my_registrations(cls, user_id: int) -> list[dict]:
        """All registrations of a user, newest first"""
        async with new_session() as session:
            return await RegistrationRepository.list_by_user(session, user_id)


    @classmethod
    async def get_event_registrations(cls, organizer_id: int, event_id: int, status: Optional[str] = None) -> list[dict]:
        """Registrations of an event, visible to its organizer only"""
        if status is not None and status not in (
            RegistrationStatus.REGISTERED,
            RegistrationStatus.WAITLIST,
            RegistrationStatus.CANCELLED,
            RegistrationStatus.ATTENDED,
        ):
            raise ValidationError(f"unknown registration status '{status}'")

        async with new_session() as session:
            event = await EventRepository.get_event_by_id(session, event_id)
            if not event:
                raise NotFoundError("event not found")
            if event.organizer_id != organizer_id:
                raise PermissionDeniedError("you are not the organizer of this event")
            return await RegistrationRepository.list_by_event(session, event_id, status)
