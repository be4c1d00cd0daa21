from datetime import datetime
from typing import Optional
from sqlalchemy import CheckConstraint, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_campus.database import Model
from event_campus.utils.time import utcnow




class EventCategory:
    SEMINAR = "seminar"
    WORKSHOP = "workshop"
    LOMBA = "lomba"
    KONSER = "konser"


class EventType:
    ONLINE = "online"
    OFFLINE = "offline"


class EventStatus:
    DRAFT = "draft"
    PUBLISHED = "published"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EventOrm(Model):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("max_participants > 0", name="check_max_participants_positive"),
        CheckConstraint("current_participants >= 0", name="check_current_participants_non_negative"),
        CheckConstraint("current_participants <= max_participants", name="check_current_lte_max"),
    )
    
    id: Mapped[int] = mapped_column(primary_key=True)
    organizer_id: Mapped[int] = mapped_column(nullable=False, index=True)
    title: Mapped[str] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(nullable=False)
    event_type: Mapped[str] = mapped_column(nullable=False)
    location: Mapped[Optional[str]] = mapped_column(nullable=True)
    zoom_link: Mapped[Optional[str]] = mapped_column(nullable=True)
    poster_url: Mapped[Optional[str]] = mapped_column(nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    registration_deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    max_participants: Mapped[int] = mapped_column(nullable=False)
    current_participants: Mapped[int] = mapped_column(nullable=False, default=0)
    is_uii_only: Mapped[bool] = mapped_column(default=False)
    status: Mapped[str] = mapped_column(nullable=False, default=EventStatus.DRAFT, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def available_slots(self) -> int:
        return max(0, self.max_participants - self.current_participants)

    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    def can_register(self, now: datetime) -> bool:
        return (
            self.status == EventStatus.PUBLISHED
            and now < self.registration_deadline
            and now < self.start_date
        )

    def has_started(self, now: datetime) -> bool:
        return now >= self.start_date

    def has_ended(self, now: datetime) -> bool:
        return now >= self.end_date
