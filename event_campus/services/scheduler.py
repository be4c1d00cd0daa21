import logging
from datetime import datetime, timedelta
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from event_campus import config
from event_campus.database import new_session
from event_campus.models.event import EventOrm, EventStatus
from event_campus.models.registration import RegistrationStatus
from event_campus.repositories.event import EventRepository
from event_campus.repositories.registration import RegistrationRepository
from event_campus.services.notifications import notifier
from event_campus.services.registration import RegistrationService
from event_campus.utils.errors import NotFoundError, PermissionDeniedError, StateError
from event_campus.utils.time import utcnow




logger = logging.getLogger(__name__)

REMINDER_WINDOW_START = timedelta(hours=24)
REMINDER_WINDOW_END = timedelta(hours=48)


async def update_event_statuses(now: Optional[datetime] = None) -> int:
    """Move events along published -> ongoing -> completed by wall clock"""
    now = now or utcnow()
    updated = 0

    async with new_session() as session, session.begin():
        events = await EventRepository.list_events_by_status(
            session, [EventStatus.PUBLISHED, EventStatus.ONGOING]
        )
        for event in events:
            if event.has_ended(now):
                new_status = EventStatus.COMPLETED
            elif event.status == EventStatus.PUBLISHED and event.has_started(now):
                new_status = EventStatus.ONGOING
            else:
                continue

            # the event may have been cancelled since it was read
            if await EventRepository.update_status(session, event.id, new_status, expected_status=event.status):
                logger.info("Event %s status %s -> %s", event.id, event.status, new_status)
                updated += 1

    logger.info("Event statuses updated: %s", updated)
    return updated


async def _send_reminders_for_event(event: EventOrm) -> int:
    async with new_session() as session:
        pending = await RegistrationRepository.list_pending_reminders(session, event.id)

    sent = 0
    for registration, user in pending:
        try:
            delivered = await notifier.sender.send_reminder(
                user.email,
                user.full_name,
                event.title,
                event.start_date,
                event.location,
                event.zoom_link,
                registration.id,
            )
        except Exception:
            logger.exception("Reminder for registration %s failed", registration.id)
            continue
        if not delivered:
            logger.warning("Reminder for registration %s was not delivered", registration.id)
            continue

        async with new_session() as session, session.begin():
            await RegistrationRepository.mark_reminder_sent(session, registration.id)
        sent += 1

    logger.info("Reminders sent for event %s: %s", event.id, sent)
    return sent


async def send_h1_reminders(now: Optional[datetime] = None) -> int:
    """Remind registered participants of published events starting tomorrow"""
    now = now or utcnow()
    async with new_session() as session:
        events = await EventRepository.list_events_starting_between(
            session, EventStatus.PUBLISHED, now + REMINDER_WINDOW_START, now + REMINDER_WINDOW_END
        )

    sent = 0
    for event in events:
        sent += await _send_reminders_for_event(event)

    logger.info("H-1 reminders sent: %s", sent)
    return sent


async def send_event_reminders(organizer_id: int, event_id: int) -> int:
    """Send pending reminders for one event right away, on the organizer's request"""
    async with new_session() as session:
        event = await EventRepository.get_event_by_id(session, event_id)
    if not event:
        raise NotFoundError("event not found")
    if event.organizer_id != organizer_id:
        raise PermissionDeniedError("you don't have permission to send reminders for this event")
    if event.status != EventStatus.PUBLISHED:
        raise StateError("reminders can only be sent for published events")

    return await _send_reminders_for_event(event)


async def fill_open_seats() -> int:
    """Hand free seats of published events to their waitlists"""
    async with new_session() as session:
        events = await EventRepository.list_events_by_status(session, [EventStatus.PUBLISHED])
        candidates = []
        for event in events:
            if event.is_full():
                continue
            waiting = await RegistrationRepository.count_by_event_and_status(
                session, event.id, [RegistrationStatus.WAITLIST]
            )
            if waiting:
                candidates.append(event.id)

    promoted = 0
    for event_id in candidates:
        try:
            promoted += await RegistrationService.fill_open_seats(event_id)
        except Exception:
            logger.exception("Filling open seats of event %s failed", event_id)

    if promoted:
        logger.info("Open-seat sweep promoted %s registrations", promoted)
    return promoted


def schedule_jobs() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=config.SCHEDULER_TIMEZONE)
    scheduler.add_job(update_event_statuses, "cron", minute=0, id="update_event_statuses")
    scheduler.add_job(send_h1_reminders, "cron", hour=config.REMINDER_HOUR, minute=0, id="send_h1_reminders")
    scheduler.add_job(fill_open_seats, "cron", minute=30, id="fill_open_seats")
    scheduler.start()

    logger.info(
        "Scheduler started: status updater hourly, H-1 reminders daily at %02d:00, open-seat sweep hourly",
        config.REMINDER_HOUR,
    )
    return scheduler
