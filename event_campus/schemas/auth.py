from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime




class SUserRegister(BaseModel):
    email: str = Field(description="Email address", examples=["budi@students.uii.ac.id"])
    password: str = Field(min_length=8, description="At least 8 characters")
    full_name: str = Field(min_length=1, description="Full name", examples=["Budi Santoso"])
    phone_number: str = Field(description="Indonesian phone number", examples=["081234567890"])


class SUserLogin(BaseModel):
    email: str
    password: str


class SUser(BaseModel):
    id: int
    email: str
    full_name: str
    phone_number: str
    role: str
    is_uii_civitas: bool
    is_approved: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SUserSession(BaseModel):
    session_token: str
    expires_at: datetime
    user: SUser
