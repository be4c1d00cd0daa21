"""
Registration engine tests: seats, waitlist, cancellation and promotion.
"""
import asyncio
from datetime import timedelta

import pytest

from conftest import assert_counter_consistent, load_event, load_registration
from event_campus.models.event import EventStatus
from event_campus.models.registration import RegistrationStatus
from event_campus.services import scheduler
from event_campus.services.notifications import notifier
from event_campus.services.registration import RegistrationService
from event_campus.utils.errors import NotFoundError, PermissionDeniedError, StateError


async def register(user, event):
    return (await RegistrationService.register_for_event(user.id, event.id))["registration"]


class TestRegisterForEvent:
    async def test_takes_a_seat_when_available(self, make_user, make_event, sender):
        user = await make_user()
        event = await make_event(max_participants=2)

        result = await RegistrationService.register_for_event(user.id, event.id)
        await notifier.drain()

        assert result["registration"].status == RegistrationStatus.REGISTERED
        assert result["waitlist_position"] is None
        assert (await load_event(event.id)).current_participants == 1
        confirmations = sender.of_kind("confirmation", user.email)
        assert len(confirmations) == 1
        assert confirmations[0]["registration_id"] == result["registration"].id
        assert sender.of_kind("waitlist") == []

    async def test_full_event_goes_to_waitlist(self, make_user, make_event, sender):
        first, second, third = await make_user(), await make_user(), await make_user()
        event = await make_event(max_participants=1)

        await register(first, event)
        result_second = await RegistrationService.register_for_event(second.id, event.id)
        result_third = await RegistrationService.register_for_event(third.id, event.id)
        await notifier.drain()

        assert result_second["registration"].status == RegistrationStatus.WAITLIST
        assert result_second["waitlist_position"] == 1
        assert result_third["waitlist_position"] == 2
        assert (await load_event(event.id)).current_participants == 1
        assert [m["position"] for m in sender.of_kind("waitlist")] == [1, 2]
        assert sender.of_kind("confirmation", second.email) == []

    async def test_concurrent_requests_for_last_seat(self, make_user, make_event):
        first, second = await make_user(), await make_user()
        event = await make_event(max_participants=1)

        results = await asyncio.gather(
            RegistrationService.register_for_event(first.id, event.id),
            RegistrationService.register_for_event(second.id, event.id),
        )

        statuses = sorted(r["registration"].status for r in results)
        assert statuses == [RegistrationStatus.REGISTERED, RegistrationStatus.WAITLIST]
        event = await assert_counter_consistent(event.id)
        assert event.current_participants == 1

    async def test_burst_never_overbooks(self, make_user, make_event):
        users = [await make_user() for _ in range(8)]
        event = await make_event(max_participants=3)

        results = await asyncio.gather(
            *(RegistrationService.register_for_event(u.id, event.id) for u in users)
        )

        registered = [r for r in results if r["registration"].status == RegistrationStatus.REGISTERED]
        waitlisted = [r for r in results if r["registration"].status == RegistrationStatus.WAITLIST]
        assert len(registered) == 3
        assert sorted(r["waitlist_position"] for r in waitlisted) == [1, 2, 3, 4, 5]
        event = await assert_counter_consistent(event.id)
        assert event.current_participants == 3

    async def test_second_registration_is_rejected(self, make_user, make_event):
        user = await make_user()
        event = await make_event()
        await register(user, event)

        with pytest.raises(StateError, match="you are already registered for this event"):
            await RegistrationService.register_for_event(user.id, event.id)
        assert (await load_event(event.id)).current_participants == 1

    async def test_second_waitlist_entry_is_rejected(self, make_user, make_event):
        holder, user = await make_user(), await make_user()
        event = await make_event(max_participants=1)
        await register(holder, event)
        await register(user, event)

        with pytest.raises(StateError, match="you are already in the waitlist for this event"):
            await RegistrationService.register_for_event(user.id, event.id)

    @pytest.mark.parametrize("fields", [
        {"status": EventStatus.DRAFT},
        {"status": EventStatus.CANCELLED},
        {"registration_deadline_passed": True},
    ])
    async def test_closed_registration(self, make_user, make_event, fields):
        user = await make_user()
        if fields.get("registration_deadline_passed"):
            event = await make_event(starts_in=timedelta(minutes=30))
        else:
            event = await make_event(**fields)

        with pytest.raises(StateError, match="registration is closed for this event"):
            await RegistrationService.register_for_event(user.id, event.id)
        assert (await load_event(event.id)).current_participants == 0

    async def test_uii_only_event_rejects_outsiders(self, make_user, make_event):
        outsider = await make_user(email="someone@gmail.com")
        event = await make_event(is_uii_only=True)

        with pytest.raises(PermissionDeniedError, match="this event is only for UII civitas"):
            await RegistrationService.register_for_event(outsider.id, event.id)

        insider = await make_user(email="dosen@uii.ac.id")
        assert (await register(insider, event)).status == RegistrationStatus.REGISTERED

    async def test_unknown_event(self, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await RegistrationService.register_for_event(user.id, 999)


class TestCancelRegistration:
    async def test_cancelling_seat_promotes_waitlist(self, make_user, make_event, sender):
        a, b, c = await make_user(), await make_user(), await make_user()
        event = await make_event(max_participants=2)

        reg_a = await register(a, event)
        await register(b, event)
        reg_c = await register(c, event)
        assert reg_c.status == RegistrationStatus.WAITLIST
        assert (await load_event(event.id)).current_participants == 2

        cancelled = await RegistrationService.cancel_registration(a.id, reg_a.id)
        await notifier.drain()

        assert cancelled.status == RegistrationStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert (await load_registration(reg_c.id)).status == RegistrationStatus.REGISTERED
        event = await assert_counter_consistent(event.id)
        assert event.current_participants == 2
        assert len(sender.of_kind("promotion", c.email)) == 1
        assert len(sender.of_kind("cancellation", a.email)) == 1

    async def test_promotion_is_fifo(self, make_user, make_event, sender):
        holder, early, late = await make_user(), await make_user(), await make_user()
        event = await make_event(max_participants=1)

        reg_holder = await register(holder, event)
        reg_early = await register(early, event)
        reg_late = await register(late, event)

        await RegistrationService.cancel_registration(holder.id, reg_holder.id)
        await notifier.drain()

        assert (await load_registration(reg_early.id)).status == RegistrationStatus.REGISTERED
        assert (await load_registration(reg_late.id)).status == RegistrationStatus.WAITLIST
        assert sender.of_kind("promotion", late.email) == []
        await assert_counter_consistent(event.id)

    async def test_cancelling_waitlist_leaves_counter(self, make_user, make_event, sender):
        holder, waiting, other = await make_user(), await make_user(), await make_user()
        event = await make_event(max_participants=1)
        await register(holder, event)
        reg_waiting = await register(waiting, event)
        reg_other = await register(other, event)

        await RegistrationService.cancel_registration(waiting.id, reg_waiting.id)
        await notifier.drain()

        assert (await load_registration(reg_other.id)).status == RegistrationStatus.WAITLIST
        assert (await load_event(event.id)).current_participants == 1
        assert sender.of_kind("promotion") == []
        assert len(sender.of_kind("cancellation", waiting.email)) == 1

    async def test_cancel_without_waitlist_frees_seat(self, make_user, make_event):
        user = await make_user()
        event = await make_event(max_participants=2)
        reg = await register(user, event)

        await RegistrationService.cancel_registration(user.id, reg.id)

        event = await assert_counter_consistent(event.id)
        assert event.current_participants == 0

    async def test_only_owner_can_cancel(self, make_user, make_event):
        owner, stranger = await make_user(), await make_user()
        event = await make_event()
        reg = await register(owner, event)

        with pytest.raises(PermissionDeniedError, match="you don't have permission to cancel this registration"):
            await RegistrationService.cancel_registration(stranger.id, reg.id)
        assert (await load_registration(reg.id)).status == RegistrationStatus.REGISTERED

    async def test_unknown_registration(self, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError, match="registration not found"):
            await RegistrationService.cancel_registration(user.id, 12345)

    async def test_cannot_cancel_twice(self, make_user, make_event):
        user = await make_user()
        event = await make_event()
        reg = await register(user, event)
        await RegistrationService.cancel_registration(user.id, reg.id)

        with pytest.raises(StateError, match="cannot cancel this registration"):
            await RegistrationService.cancel_registration(user.id, reg.id)
        event = await assert_counter_consistent(event.id)
        assert event.current_participants == 0

    async def test_reregister_after_cancel_creates_new_row(self, make_user, make_event):
        user = await make_user()
        event = await make_event()
        first = await register(user, event)
        await RegistrationService.cancel_registration(user.id, first.id)

        second = await register(user, event)

        assert second.id != first.id
        assert second.status == RegistrationStatus.REGISTERED
        assert (await load_registration(first.id)).status == RegistrationStatus.CANCELLED
        await assert_counter_consistent(event.id)

    async def test_failed_promotion_is_repaired_by_sweep(self, make_user, make_event, monkeypatch):
        holder, waiting = await make_user(), await make_user()
        event = await make_event(max_participants=1)
        reg_holder = await register(holder, event)
        reg_waiting = await register(waiting, event)

        async def broken(*args, **kwargs):
            raise RuntimeError("database went away")

        monkeypatch.setattr(RegistrationService, "promote_into_open_seats", broken)
        cancelled = await RegistrationService.cancel_registration(holder.id, reg_holder.id)
        assert cancelled.status == RegistrationStatus.CANCELLED
        assert (await load_registration(reg_waiting.id)).status == RegistrationStatus.WAITLIST
        await assert_counter_consistent(event.id)

        monkeypatch.undo()
        assert await scheduler.fill_open_seats() == 1
        assert (await load_registration(reg_waiting.id)).status == RegistrationStatus.REGISTERED
        await assert_counter_consistent(event.id)

    async def test_concurrent_cancellations_promote_in_order(self, make_user, make_event, sender):
        holders = [await make_user() for _ in range(3)]
        waiting = [await make_user() for _ in range(5)]
        event = await make_event(max_participants=3)
        held = [await register(u, event) for u in holders]
        queued = [await register(u, event) for u in waiting]

        await asyncio.gather(*(
            RegistrationService.cancel_registration(user.id, reg.id) for user, reg in zip(holders, held)
        ))
        await notifier.drain()

        statuses = [(await load_registration(reg.id)).status for reg in queued]
        assert statuses == [RegistrationStatus.REGISTERED] * 3 + [RegistrationStatus.WAITLIST] * 2
        event = await assert_counter_consistent(event.id)
        assert event.current_participants == 3
        assert len(sender.of_kind("promotion")) == 3

    async def test_mixed_sequence_keeps_counter_consistent(self, make_user, make_event):
        users = [await make_user() for _ in range(6)]
        event = await make_event(max_participants=3)
        registrations = {u.id: await register(u, event) for u in users}

        for user in users[:4]:
            await RegistrationService.cancel_registration(user.id, registrations[user.id].id)
            await assert_counter_consistent(event.id)

        registrations[users[0].id] = await register(users[0], event)
        event = await assert_counter_consistent(event.id)
        assert event.current_participants == 3


class TestListings:
    async def test_my_registrations_newest_first(self, make_user, make_event):
        user = await make_user()
        older = await make_event(title="Workshop Python")
        newer = await make_event(title="Lomba Coding")
        await register(user, older)
        await register(user, newer)

        items = await RegistrationService.get_my_registrations(user.id)

        assert [i["event_title"] for i in items] == ["Lomba Coding", "Workshop Python"]
        assert all(i["event_start_date"] for i in items)

    async def test_event_registrations_for_organizer(self, make_user, make_event, organizer):
        a, b = await make_user(), await make_user()
        event = await make_event(max_participants=1)
        await register(a, event)
        await register(b, event)

        everyone = await RegistrationService.get_event_registrations(organizer.id, event.id)
        waiting = await RegistrationService.get_event_registrations(organizer.id, event.id, RegistrationStatus.WAITLIST)

        assert [i["user_email"] for i in everyone] == [a.email, b.email]
        assert [i["user_email"] for i in waiting] == [b.email]

    async def test_event_registrations_hidden_from_others(self, make_user, make_event):
        stranger = await make_user()
        event = await make_event()

        with pytest.raises(PermissionDeniedError):
            await RegistrationService.get_event_registrations(stranger.id, event.id)
