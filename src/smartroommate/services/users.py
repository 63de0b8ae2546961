from typing import Any
import logging

from pydantic import BaseModel

from smartroommate.core.dto import UserDTO
from smartroommate.core.exceptions import NotFound, ProfileIncomplete
from smartroommate.core.interfaces import UserInterface
from .compatibility import compatibility_score
from .profile import build_profile_update


class RoommateMatch(BaseModel):
    profile: UserDTO
    compatibility: int


class UserService:
    """Profile reads and writes, and the roommate browser."""

    def __init__(self, user_gateway: UserInterface, logger: logging.Logger | None = None):
        self._users = user_gateway
        self._logger = logger or logging.getLogger(__name__)

    async def get_profile(self, user_id: int) -> UserDTO:
        user = await self._users.get_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def update_profile(self, user_id: int, changes: dict[str, Any]) -> UserDTO:
        current = await self.get_profile(user_id)
        values = build_profile_update(current, changes)
        user = await self._users.update_profile(user_id, values)
        if user is None:
            raise NotFound("User not found")
        self._logger.info("Profile of user %s updated (complete=%s)", user_id, user.profile_complete)
        return user

    async def list_roommates(self, user_id: int) -> list[RoommateMatch]:
        """
        Other users with complete profiles, best match first.
        Only users whose own profile is complete may browse.
        """
        viewer = await self.get_profile(user_id)
        if not viewer.profile_complete:
            raise ProfileIncomplete()

        candidates = await self._users.get_complete_profiles(exclude_user_id=user_id)
        matches = [
            RoommateMatch(profile=candidate, compatibility=compatibility_score(viewer, candidate))
            for candidate in candidates
        ]
        # stable sort keeps newest first among equal scores
        matches.sort(key=lambda match: match.compatibility, reverse=True)
        return matches
