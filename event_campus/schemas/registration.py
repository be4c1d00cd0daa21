from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List




class SRegistration(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: str
    registered_at: datetime
    cancelled_at: Optional[datetime] = None
    reminder_sent: bool

    model_config = ConfigDict(from_attributes=True)


class SRegistrationResult(BaseModel):
    registration: SRegistration
    waitlist_position: Optional[int] = Field(None, description="Position in the waitlist, if waitlisted")
    message: str


class SRegistrationWithEvent(SRegistration):
    event_title: str = Field(description="Event title")
    event_start_date: datetime = Field(description="Event start")
    event_status: str = Field(description="Event status")


class SRegistrationWithUser(SRegistration):
    user_name: str = Field(description="Participant name")
    user_email: str = Field(description="Participant email")
    user_phone: str = Field(description="Participant phone number")


class SRegistrationListResponse(BaseModel):
    registrations: List[SRegistrationWithEvent]
    total_count: int


class SEventRegistrationsResponse(BaseModel):
    event_id: int
    registrations: List[SRegistrationWithUser]
    total_count: int
