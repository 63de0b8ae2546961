from datetime import datetime

import pytest

from smartroommate.core.dto import PropertyDTO
from smartroommate.core.exceptions import AccessDenied, NotFound, ValidationFailed
from smartroommate.services.listings import (
    ListingFilter,
    ListingService,
    haversine_km,
    normalize_listing,
    sanitize_gallery,
)


def listing(listing_id, **fields):
    defaults = {
        "id": listing_id,
        "user_id": 1,
        "title": f"Room {listing_id}",
        "location": "Lisbon",
        "price": 500.0,
        "rooms": 2,
        "created_at": datetime(2025, 1, 1),
    }
    defaults.update(fields)
    return PropertyDTO(**defaults)


class TestNormalizeListing:
    def test_required_fields(self):
        with pytest.raises(ValidationFailed):
            normalize_listing({"title": "Room", "location": "  ", "price": 400})
        with pytest.raises(ValidationFailed):
            normalize_listing({"title": "Room", "location": "Lisbon"})

    def test_numbers_from_strings(self):
        values = normalize_listing({
            "title": " Room ",
            "location": "Lisbon",
            "price": "450.5",
            "rooms": "3",
            "latitude": "38.72",
            "longitude": "-9.14",
        })
        assert values["title"] == "Room"
        assert values["price"] == 450.5
        assert values["rooms"] == 3
        assert values["latitude"] == pytest.approx(38.72)
        assert values["longitude"] == pytest.approx(-9.14)

    @pytest.mark.parametrize("field, value", [
        ("price", "cheap"),
        ("rooms", "two"),
        ("latitude", 91),
        ("longitude", -181),
    ])
    def test_invalid_values(self, field, value):
        data = {"title": "Room", "location": "Lisbon", "price": 300}
        data[field] = value
        with pytest.raises(ValidationFailed):
            normalize_listing(data)

    def test_main_image_falls_back_to_first_gallery_image(self):
        values = normalize_listing({
            "title": "Room",
            "location": "Lisbon",
            "price": 300,
            "gallery_images": ["http://img/a.png", "http://img/b.png"],
        })
        assert values["main_image_url"] == "http://img/a.png"

    def test_sanitize_gallery_formats(self):
        assert sanitize_gallery('["a", " b ", ""]') == ["a", "b"]
        assert sanitize_gallery("a, b,,c") == ["a", "b", "c"]
        assert sanitize_gallery(None) == []


def test_haversine_lisbon_porto():
    distance = haversine_km(38.7223, -9.1393, 41.1579, -8.6291)
    assert 270 < distance < 285


class TestListingFilter:
    def test_price_and_rooms(self):
        listings = [
            listing(1, price=300, rooms=1),
            listing(2, price=600, rooms=3),
            listing(3, price=450, rooms=None),
        ]
        result = ListingFilter(min_price=400, rooms_min=2).apply(listings)
        assert [item.id for item in result] == [2]

    def test_cities_are_case_insensitive(self):
        listings = [listing(1, location="Lisbon"), listing(2, location="Porto"), listing(3, location="Braga")]
        result = ListingFilter(cities=["lisbon", " PORTO "]).apply(listings)
        assert [item.id for item in result] == [1, 2]

    def test_search_city_substring(self):
        listings = [listing(1, location="Lisbon Centre"), listing(2, location="Porto")]
        result = ListingFilter(search_city="lisbon").apply(listings)
        assert [item.id for item in result] == [1]

    def test_radius(self):
        listings = [
            listing(1, latitude=38.7223, longitude=-9.1393),
            listing(2, latitude=41.1579, longitude=-8.6291),
            listing(3),
        ]
        result = ListingFilter(near_lat=38.73, near_lng=-9.14, radius_km=10).apply(listings)
        assert [item.id for item in result] == [1]

    def test_with_coordinates(self):
        listings = [listing(1, latitude=38.7, longitude=-9.1), listing(2)]
        result = ListingFilter(with_coordinates=True).apply(listings)
        assert [item.id for item in result] == [1]

    def test_radius_needs_center(self):
        with pytest.raises(ValidationFailed):
            ListingFilter(radius_km=5)

    def test_empty_filter_keeps_everything(self):
        listings = [listing(1), listing(2)]
        assert ListingFilter().apply(listings) == listings


class TestListingService:
    @pytest.mark.asyncio
    async def test_create_and_get(self, property_gateway, make_user):
        owner = await make_user("Owner")
        service = ListingService(property_gateway)

        created = await service.create_listing(owner.id, {
            "title": "Sunny room",
            "location": "Lisbon",
            "price": "500",
            "gallery_images": ["http://img/a.png"],
        })
        fetched = await service.get_listing(created.id)

        assert fetched.title == "Sunny room"
        assert fetched.owner_name == "Owner"
        assert fetched.gallery_images == ["http://img/a.png"]
        assert fetched.main_image_url == "http://img/a.png"

    @pytest.mark.asyncio
    async def test_only_owner_can_update_or_delete(self, property_gateway, make_user, make_property):
        owner = await make_user()
        other = await make_user()
        prop = await make_property(owner.id)
        service = ListingService(property_gateway)

        with pytest.raises(AccessDenied):
            await service.update_listing(prop.id, other.id, {"title": "Mine", "location": "Porto", "price": 1})
        with pytest.raises(AccessDenied):
            await service.delete_listing(prop.id, other.id)

        updated = await service.update_listing(prop.id, owner.id, {"title": "Renamed", "location": "Porto", "price": 1})
        assert updated.title == "Renamed"

        await service.delete_listing(prop.id, owner.id)
        with pytest.raises(NotFound):
            await service.get_listing(prop.id)

    @pytest.mark.asyncio
    async def test_non_owner_is_denied_before_validation(self, property_gateway, make_user, make_property):
        owner = await make_user()
        other = await make_user()
        prop = await make_property(owner.id)
        service = ListingService(property_gateway)

        with pytest.raises(AccessDenied):
            await service.update_listing(prop.id, other.id, {"title": "", "price": "cheap"})

    @pytest.mark.asyncio
    async def test_invalid_update_changes_nothing(self, property_gateway, make_user, make_property):
        owner = await make_user()
        prop = await make_property(owner.id, title="Original")
        service = ListingService(property_gateway)

        with pytest.raises(ValidationFailed):
            await service.update_listing(prop.id, owner.id, {"title": "", "location": "Porto", "price": 1})

        assert (await service.get_listing(prop.id)).title == "Original"

    @pytest.mark.asyncio
    async def test_list_by_owner_newest_first(self, property_gateway, make_user, make_property):
        owner = await make_user()
        other = await make_user()
        first = await make_property(owner.id)
        await make_property(other.id)
        second = await make_property(owner.id)
        service = ListingService(property_gateway)

        mine = await service.list_listings(owner_id=owner.id)
        assert [item.id for item in mine] == [second.id, first.id]
        assert len(await service.list_listings()) == 3
