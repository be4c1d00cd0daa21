from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_campus.database import Model
from event_campus.utils.time import utcnow




class WhitelistStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WhitelistRequestOrm(Model):
    __tablename__ = "whitelist_requests"
    
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(nullable=False, index=True)
    organization_name: Mapped[str] = mapped_column(nullable=False)
    document_url: Mapped[str] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(nullable=False, default=WhitelistStatus.PENDING)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reviewed_by: Mapped[Optional[int]] = mapped_column(nullable=True)
