from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_campus.database import Model
from event_campus.utils.time import utcnow




class AttendanceOrm(Model):
    __tablename__ = "attendances"
    
    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(nullable=False)
    registration_id: Mapped[int] = mapped_column(nullable=False, unique=True)
    marked_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    marked_by: Mapped[int] = mapped_column(nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
