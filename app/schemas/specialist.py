from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SpecialistResponse(BaseModel):
    id: str
    name: str
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    role: str

    model_config = ConfigDict(from_attributes=True)


class SpecialistAdminResponse(SpecialistResponse):
    email: str


class SpecialistCreateRequest(BaseModel):
    # Presence is checked in the service so a missing field reads like the booking form's 400.
    email: Optional[str] = None
    name: Optional[str] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None


class SpecialistUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, description="Unchanged when omitted")
    bio: Optional[str] = None
    photo_url: Optional[str] = None


class SpecialistDeletedResponse(BaseModel):
    message: str
