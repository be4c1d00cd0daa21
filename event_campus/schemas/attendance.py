from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List




class SAttendanceMark(BaseModel):
    user_id: int = Field(description="Participant to check in")
    notes: Optional[str] = Field(None, description="Free-form notes")


class SAttendanceBulkMark(BaseModel):
    user_ids: List[int] = Field(min_length=1, description="Participants to check in")


class SAttendance(BaseModel):
    id: int
    event_id: int
    user_id: int
    registration_id: int
    marked_at: datetime
    marked_by: int
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SAttendanceWithUser(SAttendance):
    user_name: str
    user_email: str


class SEventAttendanceResponse(BaseModel):
    event_id: int
    attendances: List[SAttendanceWithUser]
    total_count: int
