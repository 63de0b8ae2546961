from fastapi import APIRouter, Depends, Query, status
from dishka.integrations.fastapi import inject
from dishka import FromDishka
import logging

from smartroommate.services.listings import ListingFilter, ListingService
from .auth_api import AuthAPI
from ..models.property_api_models import *


class PropertyAPI:
    """
    Listing endpoints.

    Browsing is public; creating, editing and deleting need a bearer token and
    only the owner may edit or delete. /properties/mine is the host view.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        property_router: FastAPI router containing listing endpoints
    """

    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ):
        self.logger = logger
        self.auth_api = auth_api
        self._property_router = APIRouter(prefix="/properties", tags=["Properties"])
        self._register_endpoints()

    @property
    def property_router(self) -> APIRouter:
        return self._property_router

    def get_router(self) -> APIRouter:
        return self._property_router

    def _register_endpoints(self):
        @self.property_router.get("", response_model=list[PropertyResponse])
        @inject
        async def list_properties(
                listing_service: FromDishka[ListingService],
                min_price: float | None = None,
                max_price: float | None = None,
                rooms_min: int | None = None,
                rooms_max: int | None = None,
                cities: list[str] = Query(default=[]),
                search_city: str | None = None,
                near_lat: float | None = Query(default=None, ge=-90, le=90),
                near_lng: float | None = Query(default=None, ge=-180, le=180),
                radius_km: float | None = Query(default=None, ge=0),
                with_coordinates: bool = False
        ):
            """
            List listings newest first.

            Args:
                min_price / max_price: price bounds
                rooms_min / rooms_max: room count bounds
                cities: exact location names (case-insensitive), any of them
                search_city: substring of the location
                near_lat / near_lng / radius_km: only listings within the radius
                with_coordinates: only listings that can be shown on the map
            """
            listing_filter = ListingFilter(
                min_price=min_price,
                max_price=max_price,
                rooms_min=rooms_min,
                rooms_max=rooms_max,
                cities=cities,
                search_city=search_city,
                near_lat=near_lat,
                near_lng=near_lng,
                radius_km=radius_km,
                with_coordinates=with_coordinates
            )
            listings = await listing_service.list_listings(listing_filter)
            return [PropertyResponse(**listing.model_dump()) for listing in listings]

        @self.property_router.get("/mine", response_model=list[PropertyResponse])
        @inject
        async def list_own_properties(
                listing_service: FromDishka[ListingService],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            listings = await listing_service.list_listings(owner_id=user_id)
            return [PropertyResponse(**listing.model_dump()) for listing in listings]

        @self.property_router.get("/{property_id}", response_model=PropertyResponse)
        @inject
        async def get_property(property_id: int, listing_service: FromDishka[ListingService]):
            listing = await listing_service.get_listing(property_id)
            return PropertyResponse(**listing.model_dump())

        @self.property_router.post("", status_code=status.HTTP_201_CREATED, response_model=PropertyResponse)
        @inject
        async def create_property(
                property_data: PropertyRequest,
                listing_service: FromDishka[ListingService],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            listing = await listing_service.create_listing(user_id, property_data.model_dump())
            return PropertyResponse(**listing.model_dump())

        @self.property_router.put("/{property_id}", response_model=PropertyResponse)
        @inject
        async def update_property(
                property_id: int,
                property_data: PropertyRequest,
                listing_service: FromDishka[ListingService],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            listing = await listing_service.update_listing(property_id, user_id, property_data.model_dump())
            return PropertyResponse(**listing.model_dump())

        @self.property_router.delete("/{property_id}")
        @inject
        async def delete_property(
                property_id: int,
                listing_service: FromDishka[ListingService],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            await listing_service.delete_listing(property_id, user_id)
            return {"message": "Property deleted"}
