import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="event_campus_tests_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SMTP_USER"] = ""
os.environ["ADMIN_EMAIL"] = ""
os.environ["ADMIN_PASSWORD"] = ""
os.environ["LOG_FILE"] = ""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from event_campus.database import create_tables, delete_tables, engine, new_session
from event_campus.models.auth import UserOrm, UserRole
from event_campus.models.event import EventOrm, EventStatus
from event_campus.models.registration import RegistrationOrm, RegistrationStatus
from event_campus.repositories.event import EventRepository
from event_campus.services.notifications import notifier
from event_campus.utils.passwords import hash_password
from event_campus.utils.time import utcnow
from event_campus.utils.validators import is_uii_email


DEFAULT_PASSWORD = "password123"


class RecordingSender:
    """Stands in for the SMTP sender and remembers every message"""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    async def _record(self, kind, to, **details):
        self.sent.append({"kind": kind, "to": to, **details})
        return to not in self.fail_for

    def of_kind(self, kind, to=None):
        return [m for m in self.sent if m["kind"] == kind and (to is None or m["to"] == to)]

    async def send_registration_confirmation(self, to, user_name, event_title, event_date, registration_id):
        return await self._record("confirmation", to, event_title=event_title, registration_id=registration_id)

    async def send_waitlist_notification(self, to, user_name, event_title, position):
        return await self._record("waitlist", to, event_title=event_title, position=position)

    async def send_waitlist_promotion(self, to, user_name, event_title, event_date, registration_id):
        return await self._record("promotion", to, event_title=event_title, registration_id=registration_id)

    async def send_cancellation_confirmation(self, to, user_name, event_title):
        return await self._record("cancellation", to, event_title=event_title)

    async def send_reminder(self, to, user_name, event_title, event_date, location, zoom_link, registration_id):
        return await self._record(
            "reminder", to, event_title=event_title, zoom_link=zoom_link, registration_id=registration_id
        )

    async def send_whitelist_approval(self, to, user_name, organization_name):
        return await self._record("whitelist_approval", to, organization_name=organization_name)

    async def send_whitelist_rejection(self, to, user_name, organization_name, admin_notes=None):
        return await self._record("whitelist_rejection", to, organization_name=organization_name)


@pytest.fixture(autouse=True)
async def database():
    await delete_tables()
    await create_tables()
    yield
    await notifier.drain()
    await engine.dispose()


@pytest.fixture(autouse=True)
def sender():
    original = notifier.sender
    recording = RecordingSender()
    notifier.set_sender(recording)
    yield recording
    notifier.set_sender(original)


@pytest.fixture
def make_user():
    counter = {"n": 0}

    async def _make_user(email=None, role=UserRole.MAHASISWA, is_approved=False, is_uii_civitas=None, full_name=None):
        counter["n"] += 1
        email = email or f"user{counter['n']}@students.uii.ac.id"
        if is_uii_civitas is None:
            is_uii_civitas = is_uii_email(email)
        async with new_session() as session, session.begin():
            user = UserOrm(
                email=email,
                password_hash=hash_password(DEFAULT_PASSWORD),
                full_name=full_name or f"User {counter['n']}",
                phone_number="+6281234567890",
                role=role,
                is_uii_civitas=is_uii_civitas,
                is_approved=is_approved,
            )
            session.add(user)
        return user

    return _make_user


@pytest.fixture
async def organizer(make_user):
    return await make_user(email="bem@uii.ac.id", role=UserRole.ORGANISASI, is_approved=True, full_name="BEM UII")


@pytest.fixture
def make_event(organizer):
    async def _make_event(
        max_participants=2,
        status=EventStatus.PUBLISHED,
        starts_in=timedelta(days=7),
        duration=timedelta(hours=3),
        is_uii_only=False,
        organizer_id=None,
        **fields,
    ):
        now = utcnow()
        start_date = now + starts_in
        values = dict(
            organizer_id=organizer_id or organizer.id,
            title="Seminar Nasional AI",
            description="Seminar tentang kecerdasan buatan",
            category="seminar",
            event_type="offline",
            location="Auditorium Kahar Muzakir",
            zoom_link=None,
            poster_url="https://cdn.example.com/poster.png",
            start_date=start_date,
            end_date=start_date + duration,
            registration_deadline=start_date - timedelta(hours=1),
            max_participants=max_participants,
            current_participants=0,
            is_uii_only=is_uii_only,
            status=status,
        )
        values.update(fields)
        async with new_session() as session, session.begin():
            event = await EventRepository.create_event(session, EventOrm(**values))
        return event

    return _make_event


async def move_event(event_id, starts_in, duration=timedelta(hours=3)):
    """Shift an event in time, e.g. to let it start"""
    start_date = utcnow() + starts_in
    async with new_session() as session, session.begin():
        await EventRepository.update_event(
            session,
            event_id,
            {
                "start_date": start_date,
                "end_date": start_date + duration,
                "registration_deadline": start_date - timedelta(hours=1),
            },
        )


async def load_event(event_id):
    async with new_session() as session:
        return await EventRepository.get_event_by_id(session, event_id)


async def load_registration(registration_id):
    async with new_session() as session:
        return await session.get(RegistrationOrm, registration_id)


async def count_seat_holders(event_id):
    async with new_session() as session:
        result = await session.execute(
            select(func.count())
            .select_from(RegistrationOrm)
            .where(
                RegistrationOrm.event_id == event_id,
                RegistrationOrm.status.in_(RegistrationStatus.SEAT_HOLDING),
            )
        )
        return result.scalar()


async def assert_counter_consistent(event_id):
    event = await load_event(event_id)
    holders = await count_seat_holders(event_id)
    assert event.current_participants == holders
    assert 0 <= event.current_participants <= event.max_participants
    return event
