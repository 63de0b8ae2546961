from pydantic import BaseModel
from datetime import datetime, date


class UserDTO(BaseModel):
    id: int
    name: str
    email: str
    birthdate: date | None = None
    age: int | None = None
    gender: str | None = None
    location: str | None = None
    budget: float | None = None
    habits: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    tidiness: int | None = None
    social_energy: int | None = None
    noise_tolerance: int | None = None
    profile_complete: bool = False
    email_opt_in: bool = False
    created_at: datetime | None = None

class UserCredentialsDTO(BaseModel):
    id: int
    email: str
    hashed_password: str

class MemberDTO(BaseModel):
    id: int
    name: str
    profile_image_url: str | None = None

class RecipientDTO(BaseModel):
    id: int
    name: str
    email: str
    email_opt_in: bool

class PropertyDTO(BaseModel):
    id: int
    user_id: int
    title: str
    location: str
    price: float
    description: str | None = None
    rooms: int | None = None
    property_type: str | None = None
    main_image_url: str | None = None
    gallery_images: list[str] = []
    latitude: float | None = None
    longitude: float | None = None
    created_at: datetime
    owner_name: str | None = None
    owner_image_url: str | None = None

class ConversationDTO(BaseModel):
    id: int
    name: str | None = None
    property_id: int | None = None
    created_at: datetime

class ConversationSummaryDTO(ConversationDTO):
    members: list[MemberDTO] = []
    last_message: str | None = None
    last_message_at: datetime | None = None
    unread_count: int = 0

    @property
    def last_activity_at(self) -> datetime:
        return self.last_message_at or self.created_at

class MessageDTO(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    sender_name: str | None = None
    body: str
    created_at: datetime
