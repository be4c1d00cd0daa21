from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from event_campus.database import Model
from event_campus.utils.time import utcnow




class RegistrationStatus:
    REGISTERED = "registered"
    WAITLIST = "waitlist"
    CANCELLED = "cancelled"
    ATTENDED = "attended"

    # statuses that hold a seat in events.current_participants
    SEAT_HOLDING = (REGISTERED, ATTENDED)


class RegistrationOrm(Model):
    __tablename__ = "registrations"
    __table_args__ = (
        Index("ix_registrations_event_status_registered_at", "event_id", "status", "registered_at"),
        Index("ix_registrations_user_event", "user_id", "event_id"),
    )
    
    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(nullable=False)
    user_id: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(nullable=False, default=RegistrationStatus.REGISTERED)
    registered_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reminder_sent: Mapped[bool] = mapped_column(default=False)

    def holds_seat(self) -> bool:
        return self.status in RegistrationStatus.SEAT_HOLDING

    def can_cancel(self) -> bool:
        return self.status in (RegistrationStatus.REGISTERED, RegistrationStatus.WAITLIST)
