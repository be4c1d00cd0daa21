"""
Periodic job tests: status reconciliation, H-1 reminders and the open-seat sweep.
"""
from datetime import timedelta

import pytest

from conftest import assert_counter_consistent, load_event, load_registration
from event_campus.database import new_session
from event_campus.models.event import EventStatus
from event_campus.models.registration import RegistrationStatus
from event_campus.repositories.event import EventRepository
from event_campus.services import scheduler
from event_campus.services.registration import RegistrationService
from event_campus.utils.errors import PermissionDeniedError, StateError
from event_campus.utils.time import utcnow


async def register(user, event):
    return (await RegistrationService.register_for_event(user.id, event.id))["registration"]


class TestUpdateEventStatuses:
    async def test_moves_events_along_the_lifecycle(self, make_event):
        upcoming = await make_event()
        running = await make_event()
        finished = await make_event()
        ongoing_done = await make_event(status=EventStatus.ONGOING)
        draft = await make_event(status=EventStatus.DRAFT)

        # an hour after the events started: finished and ongoing_done have already ended
        later = utcnow() + timedelta(days=7, hours=1)
        async with new_session() as session, session.begin():
            await EventRepository.update_event(session, running.id, {"end_date": later + timedelta(hours=5)})
            await EventRepository.update_event(session, finished.id, {"end_date": later - timedelta(minutes=1)})
            await EventRepository.update_event(session, ongoing_done.id, {"end_date": later - timedelta(minutes=1)})
            await EventRepository.update_event(session, upcoming.id, {
                "start_date": later + timedelta(days=1),
                "end_date": later + timedelta(days=1, hours=3),
            })

        updated = await scheduler.update_event_statuses(now=later)

        assert updated == 3
        assert (await load_event(upcoming.id)).status == EventStatus.PUBLISHED
        assert (await load_event(running.id)).status == EventStatus.ONGOING
        assert (await load_event(finished.id)).status == EventStatus.COMPLETED
        assert (await load_event(ongoing_done.id)).status == EventStatus.COMPLETED
        assert (await load_event(draft.id)).status == EventStatus.DRAFT

    async def test_cancelled_events_are_left_alone(self, make_event):
        event = await make_event(status=EventStatus.CANCELLED)

        await scheduler.update_event_statuses(now=utcnow() + timedelta(days=30))

        assert (await load_event(event.id)).status == EventStatus.CANCELLED


class TestReminders:
    async def test_h1_reminders_go_to_registered_participants(self, make_user, make_event, sender):
        attendee, waiting = await make_user(), await make_user()
        tomorrow = await make_event(
            max_participants=1,
            starts_in=timedelta(hours=30),
            event_type="online",
            location=None,
            zoom_link="https://zoom.us/j/42",
        )
        next_week = await make_event(starts_in=timedelta(days=7))
        reg = await register(attendee, tomorrow)
        await register(waiting, tomorrow)
        await register(waiting, next_week)

        sent = await scheduler.send_h1_reminders()

        assert sent == 1
        reminders = sender.of_kind("reminder")
        assert [m["to"] for m in reminders] == [attendee.email]
        assert reminders[0]["zoom_link"] == "https://zoom.us/j/42"
        assert (await load_registration(reg.id)).reminder_sent is True

        assert await scheduler.send_h1_reminders() == 0
        assert len(sender.of_kind("reminder")) == 1

    async def test_failed_reminder_is_retried(self, make_user, make_event, sender):
        user = await make_user()
        event = await make_event(starts_in=timedelta(hours=30))
        reg = await register(user, event)
        sender.fail_for.add(user.email)

        assert await scheduler.send_h1_reminders() == 0
        assert (await load_registration(reg.id)).reminder_sent is False

        sender.fail_for.clear()
        assert await scheduler.send_h1_reminders() == 1
        assert (await load_registration(reg.id)).reminder_sent is True

    async def test_organizer_can_send_reminders_now(self, make_user, make_event, organizer, sender):
        user = await make_user()
        event = await make_event(starts_in=timedelta(days=5))
        await register(user, event)

        assert await scheduler.send_event_reminders(organizer.id, event.id) == 1
        assert await scheduler.send_event_reminders(organizer.id, event.id) == 0

    async def test_reminders_only_for_own_published_events(self, make_user, make_event, organizer):
        stranger = await make_user()
        event = await make_event()
        draft = await make_event(status=EventStatus.DRAFT)

        with pytest.raises(PermissionDeniedError):
            await scheduler.send_event_reminders(stranger.id, event.id)
        with pytest.raises(StateError, match="reminders can only be sent for published events"):
            await scheduler.send_event_reminders(organizer.id, draft.id)


class TestFillOpenSeats:
    async def test_sweep_promotes_into_free_seats(self, make_user, make_event, sender):
        event = await make_event(max_participants=1)
        holder, first, second = await make_user(), await make_user(), await make_user()
        await register(holder, event)
        reg_first = await register(first, event)
        reg_second = await register(second, event)

        # capacity grows behind the engine's back
        async with new_session() as session, session.begin():
            await EventRepository.set_max_participants(session, event.id, 2)

        assert await scheduler.fill_open_seats() == 1
        assert (await load_registration(reg_first.id)).status == RegistrationStatus.REGISTERED
        assert (await load_registration(reg_second.id)).status == RegistrationStatus.WAITLIST
        await assert_counter_consistent(event.id)

    async def test_sweep_ignores_full_events(self, make_user, make_event):
        event = await make_event(max_participants=1)
        await register(await make_user(), event)
        await register(await make_user(), event)

        assert await scheduler.fill_open_seats() == 0
