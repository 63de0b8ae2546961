from fastapi import APIRouter, Depends
from dishka.integrations.fastapi import inject
from dishka import FromDishka
import logging

from smartroommate.services.users import UserService
from .auth_api import AuthAPI
from ..models.user_api_models import *


class UserAPI:
    """
    Profile and roommate endpoints.

    The roommate list is only open to users whose own profile is complete;
    each candidate carries a compatibility score computed against the caller.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        user_router: FastAPI router containing user endpoints
    """

    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ):
        self.logger = logger
        self.auth_api = auth_api
        self._user_router = APIRouter(prefix="/users", tags=["Users"])
        self._register_endpoints()

    @property
    def user_router(self) -> APIRouter:
        return self._user_router

    def get_router(self) -> APIRouter:
        return self._user_router

    def _register_endpoints(self):
        @self.user_router.get("/me", response_model=ProfileResponse)
        @inject
        async def get_profile(
                user_service: FromDishka[UserService],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            user = await user_service.get_profile(user_id)
            return ProfileResponse(**user.model_dump())

        @self.user_router.put("/me", response_model=ProfileResponse)
        @inject
        async def update_profile(
                profile_data: ProfileUpdateRequest,
                user_service: FromDishka[UserService],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            """
            Update the caller's profile. Only submitted fields change;
            age and profile_complete are derived again on every update.
            """
            user_id = await self.auth_api.get_current_user(token)
            user = await user_service.update_profile(user_id, profile_data.model_dump(exclude_unset=True))
            return ProfileResponse(**user.model_dump())

        @self.user_router.get("/roommates", response_model=list[RoommateResponse])
        @inject
        async def list_roommates(
                user_service: FromDishka[UserService],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            matches = await user_service.list_roommates(user_id)
            return [
                RoommateResponse(
                    **match.profile.model_dump(include=set(RoommateResponse.model_fields) - {"compatibility"}),
                    compatibility=match.compatibility
                ) for match in matches
            ]
