from pydantic import BaseModel, Field
from datetime import date, datetime


class ProfileResponse(BaseModel):
    id: int
    name: str
    email: str
    age: int | None = None
    birthdate: date | None = None
    gender: str | None = None
    location: str | None = None
    budget: float | None = None
    habits: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    tidiness: int | None = None
    social_energy: int | None = None
    noise_tolerance: int | None = None
    profile_complete: bool
    email_opt_in: bool

class ProfileUpdateRequest(BaseModel):
    gender: str | None = None
    location: str | None = None
    budget: float | None = None
    habits: str | None = None
    bio: str | None = Field(None, max_length=30)
    profile_image_url: str | None = None
    tidiness: int | None = Field(None, ge=1, le=5)
    social_energy: int | None = Field(None, ge=1, le=5)
    noise_tolerance: int | None = Field(None, ge=1, le=5)
    birthdate: date | None = None
    email_opt_in: bool | None = None

class RoommateResponse(BaseModel):
    id: int
    name: str
    age: int | None = None
    gender: str | None = None
    location: str | None = None
    habits: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    tidiness: int | None = None
    social_energy: int | None = None
    noise_tolerance: int | None = None
    compatibility: int
    created_at: datetime | None = None
