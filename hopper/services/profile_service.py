"""Profile Service - Student profiles."""

import logging
from typing import Optional

from hopper.exceptions import ProfileNotFoundError
from hopper.models.profile import Profile, ProfileCreate
from hopper.repositories import HopperRepository, get_repository

logger = logging.getLogger(__name__)


class ProfileService:

    def __init__(self, repository: Optional[HopperRepository] = None):
        self.repository = repository or get_repository()

    async def get_profile(self, user_id: str) -> Profile:
        profile = await self.repository.get_profile(user_id)
        if not profile:
            raise ProfileNotFoundError(f"Profile {user_id} not found")
        return profile

    async def get_or_create_profile(self, user_id: str, data: ProfileCreate) -> Profile:
        """Profiles start at the default trust score; existing ones are returned unchanged."""
        existing = await self.repository.get_profile(user_id)
        if existing:
            return existing

        profile = await self.repository.create_profile(
            Profile(user_id=user_id, **data.model_dump())
        )
        logger.info(f"Profile created for {user_id}")
        return profile
