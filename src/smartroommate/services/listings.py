from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
import json
import logging
import math

from smartroommate.core.dto import PropertyDTO
from smartroommate.core.exceptions import ValidationFailed, NotFound, AccessDenied
from smartroommate.core.interfaces import PropertyInterface

EARTH_RADIUS_KM = 6371.0088


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_price(value: Any) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationFailed("Invalid price")
    if math.isnan(price) or math.isinf(price):
        raise ValidationFailed("Invalid price")
    return price


def _parse_rooms(value: Any) -> Optional[int]:
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise ValidationFailed("Invalid rooms value")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationFailed("Invalid rooms value")


def _parse_coordinate(value: Any, name: str, limit: float) -> Optional[float]:
    if _blank(value):
        return None
    try:
        coordinate = float(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"Invalid {name}")
    if not -limit <= coordinate <= limit:
        raise ValidationFailed(f"Invalid {name}")
    return coordinate


def sanitize_gallery(value: Any) -> list[str]:
    """Accepts a list, a JSON array string or a comma-separated string of image urls."""
    if _blank(value):
        return []

    if isinstance(value, (list, tuple)):
        items = value
    elif isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            parsed = None
        items = parsed if isinstance(parsed, list) else value.split(",")
    else:
        items = [value]

    return [str(item).strip() for item in items if str(item).strip()]


def normalize_listing(data: dict[str, Any]) -> dict[str, Any]:
    """
    Validates listing input and returns the column values to store.
    Raises ValidationFailed before anything is written.
    """
    title = _optional_text(data.get("title"))
    location = _optional_text(data.get("location"))
    if not title or not location or _blank(data.get("price")):
        raise ValidationFailed("Missing required fields")

    gallery = sanitize_gallery(data.get("gallery_images"))
    main_image = _optional_text(data.get("main_image_url")) or (gallery[0] if gallery else None)

    return {
        "title": title,
        "location": location,
        "price": _parse_price(data.get("price")),
        "description": _optional_text(data.get("description")),
        "rooms": _parse_rooms(data.get("rooms")),
        "property_type": _optional_text(data.get("property_type")),
        "main_image_url": main_image,
        "gallery_images": gallery,
        "latitude": _parse_coordinate(data.get("latitude"), "latitude", 90),
        "longitude": _parse_coordinate(data.get("longitude"), "longitude", 180),
    }


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _normalize_city(value: str) -> str:
    return " ".join(value.lower().split())


@dataclass
class ListingFilter:
    """
    Search criteria for the listings page.
    Listings without rooms never satisfy a rooms bound and listings
    without coordinates never satisfy a radius or map filter.
    """
    min_price: float | None = None
    max_price: float | None = None
    rooms_min: int | None = None
    rooms_max: int | None = None
    cities: list[str] = field(default_factory=list)
    search_city: str | None = None
    near_lat: float | None = None
    near_lng: float | None = None
    radius_km: float | None = None
    with_coordinates: bool = False

    def __post_init__(self):
        if self.radius_km is not None and (self.near_lat is None or self.near_lng is None):
            raise ValidationFailed("A radius needs near_lat and near_lng")
        if self.radius_km is not None and self.radius_km < 0:
            raise ValidationFailed("Invalid radius")

    def matches(self, listing: PropertyDTO) -> bool:
        if self.min_price is not None and listing.price < self.min_price:
            return False
        if self.max_price is not None and listing.price > self.max_price:
            return False

        if self.rooms_min is not None and (listing.rooms is None or listing.rooms < self.rooms_min):
            return False
        if self.rooms_max is not None and (listing.rooms is None or listing.rooms > self.rooms_max):
            return False

        location = _normalize_city(listing.location or "")
        selected = {_normalize_city(city) for city in self.cities if city.strip()}
        if selected and location not in selected:
            return False
        if self.search_city and _normalize_city(self.search_city) not in location:
            return False

        has_coordinates = listing.latitude is not None and listing.longitude is not None
        if self.with_coordinates and not has_coordinates:
            return False
        if self.radius_km is not None:
            if not has_coordinates:
                return False
            distance = haversine_km(self.near_lat, self.near_lng, listing.latitude, listing.longitude)
            if distance > self.radius_km:
                return False

        return True

    def apply(self, listings: Iterable[PropertyDTO]) -> list[PropertyDTO]:
        return [listing for listing in listings if self.matches(listing)]


class ListingService:
    """Listing CRUD with owner checks on top of the property gateway."""

    def __init__(self, property_gateway: PropertyInterface, logger: logging.Logger | None = None):
        self._properties = property_gateway
        self._logger = logger or logging.getLogger(__name__)

    async def list_listings(self, listing_filter: ListingFilter | None = None, owner_id: int | None = None) -> list[PropertyDTO]:
        listings = await self._properties.list_properties(owner_id=owner_id)
        if listing_filter is None:
            return listings
        return listing_filter.apply(listings)

    async def get_listing(self, property_id: int) -> PropertyDTO:
        listing = await self._properties.get_property(property_id)
        if listing is None:
            raise NotFound("Property not found")
        return listing

    async def create_listing(self, owner_id: int, data: dict[str, Any]) -> PropertyDTO:
        values = normalize_listing(data)
        listing = await self._properties.create_property(owner_id, values)
        self._logger.info("User %s created property %s", owner_id, listing.id)
        return listing

    async def _owned(self, property_id: int, user_id: int) -> PropertyDTO:
        listing = await self.get_listing(property_id)
        if listing.user_id != user_id:
            raise AccessDenied("You can only manage your own properties.")
        return listing

    async def update_listing(self, property_id: int, user_id: int, data: dict[str, Any]) -> PropertyDTO:
        await self._owned(property_id, user_id)
        values = normalize_listing(data)
        listing = await self._properties.update_property(property_id, values)
        if listing is None:
            raise NotFound("Property not found")
        return listing

    async def delete_listing(self, property_id: int, user_id: int) -> None:
        await self._owned(property_id, user_id)
        if not await self._properties.delete_property(property_id):
            raise NotFound("Property not found")
        self._logger.info("User %s deleted property %s", user_id, property_id)
