from pydantic import BaseModel
from datetime import datetime
from typing import Any


class PropertyRequest(BaseModel):
    """ Loose on purpose: numbers may arrive as strings from forms and are validated by the listing rules """
    title: str | None = None
    location: str | None = None
    price: Any = None
    description: str | None = None
    rooms: Any = None
    property_type: str | None = None
    main_image_url: str | None = None
    gallery_images: Any = None
    latitude: Any = None
    longitude: Any = None

class PropertyResponse(BaseModel):
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

class UploadResponse(BaseModel):
    urls: list[str]
