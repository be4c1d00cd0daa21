from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List




class SWhitelistSubmit(BaseModel):
    organization_name: str = Field(min_length=1, description="Organization name", examples=["BEM FTI"])
    document_url: str = Field(min_length=1, description="Link to the supporting document")


class SWhitelistReview(BaseModel):
    approved: bool
    admin_notes: Optional[str] = None


class SWhitelistRequest(BaseModel):
    id: int
    user_id: int
    organization_name: str
    document_url: str
    status: str
    admin_notes: Optional[str] = None
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class SWhitelistRequestWithUser(SWhitelistRequest):
    user_name: str
    user_email: str


class SWhitelistListResponse(BaseModel):
    requests: List[SWhitelistRequestWithUser]
    total_count: int
