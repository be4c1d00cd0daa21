from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, List, Literal

from event_campus.utils.time import to_utc_naive




EventCategoryLiteral = Literal["seminar", "workshop", "lomba", "konser"]
EventTypeLiteral = Literal["online", "offline"]
EventStatusLiteral = Literal["draft", "published", "ongoing", "completed", "cancelled"]


class SEventBase(BaseModel):
    title: str = Field(
        min_length=1,
        description="Event title",
        examples=["Seminar Nasional AI"],
    )
    description: str = Field(
        min_length=1,
        description="Event description",
        examples=["Seminar tentang perkembangan kecerdasan buatan"],
    )
    category: EventCategoryLiteral = Field(
        description="Event category",
        examples=["seminar"],
    )
    event_type: EventTypeLiteral = Field(
        description="Online or offline event",
        examples=["offline"],
    )
    location: Optional[str] = Field(
        None,
        description="Venue, required for offline events",
        examples=["Auditorium Kahar Muzakir"],
    )
    zoom_link: Optional[str] = Field(
        None,
        description="Join link, required for online events",
        examples=["https://zoom.us/j/123456789"],
    )
    poster_url: Optional[str] = Field(
        None,
        description="URL of a poster image hosted elsewhere, required before publishing",
        examples=["https://cdn.example.com/posters/ai.png"],
    )
    start_date: datetime = Field(
        description="Start of the event",
        examples=["2026-11-15T02:00:00Z"],
    )
    end_date: datetime = Field(
        description="End of the event",
        examples=["2026-11-15T05:00:00Z"],
    )
    registration_deadline: datetime = Field(
        description="Registration closes at this moment",
        examples=["2026-11-14T17:00:00Z"],
    )
    max_participants: int = Field(
        ge=1,
        description="Capacity",
        examples=[100],
    )
    is_uii_only: bool = Field(
        False,
        description="Only UII civitas may register",
    )

    @field_validator("start_date", "end_date", "registration_deadline")
    @classmethod
    def normalize_datetime(cls, value: datetime) -> datetime:
        return to_utc_naive(value)


class SEventCreate(SEventBase):
    pass


class SEventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, description="Event title")
    description: Optional[str] = Field(None, min_length=1, description="Event description")
    category: Optional[EventCategoryLiteral] = Field(None, description="Event category")
    event_type: Optional[EventTypeLiteral] = Field(None, description="Online or offline event")
    location: Optional[str] = Field(None, description="Venue")
    zoom_link: Optional[str] = Field(None, description="Join link")
    poster_url: Optional[str] = Field(None, description="URL of a poster image hosted elsewhere")
    start_date: Optional[datetime] = Field(None, description="Start of the event")
    end_date: Optional[datetime] = Field(None, description="End of the event")
    registration_deadline: Optional[datetime] = Field(None, description="Registration deadline")
    max_participants: Optional[int] = Field(None, ge=1, description="Capacity")
    is_uii_only: Optional[bool] = Field(None, description="Only UII civitas may register")

    @field_validator("start_date", "end_date", "registration_deadline")
    @classmethod
    def normalize_datetime(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(value) if value is not None else None


class SEventFilter(BaseModel):
    category: Optional[EventCategoryLiteral] = None
    status: Optional[EventStatusLiteral] = None
    is_uii_only: Optional[bool] = None
    organizer_id: Optional[int] = None
    start_from: Optional[datetime] = None
    start_until: Optional[datetime] = None

    @field_validator("start_from", "start_until")
    @classmethod
    def normalize_datetime(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(value) if value is not None else None


class SEvent(BaseModel):
    id: int
    organizer_id: int
    title: str
    description: str
    category: str
    event_type: str
    location: Optional[str] = None
    poster_url: Optional[str] = None
    start_date: datetime
    end_date: datetime
    registration_deadline: datetime
    max_participants: int
    current_participants: int
    available_slots: int
    is_uii_only: bool
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SEventWithOrganizer(SEvent):
    organizer_name: Optional[str] = None


class SEventOwnerView(SEventWithOrganizer):
    zoom_link: Optional[str] = None


class SEventListResponse(BaseModel):
    events: List[SEventWithOrganizer]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class SEventOwnerListResponse(BaseModel):
    events: List[SEventOwnerView]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class SEventDeleteResult(BaseModel):
    success: bool
    outcome: Literal["deleted", "cancelled"]
    message: str


class SReminderResult(BaseModel):
    event_id: int
    reminders_sent: int
