"""
Profile Service
Self-service profile management for authenticated parking users
"""

from typing import Dict, Any

import asyncpg
import structlog

from parking_auth.exceptions import AuthError, ConflictError, NotFoundError
from parking_auth.models.schemas import (
    ProfileUpdateSchema, PasswordChangeSchema, UserProfileSchema, project
)
from parking_auth.utils.database import AuthDatabase
from parking_auth.utils.security import hash_password, verify_password

logger = structlog.get_logger(__name__)


class ProfileService:
    """Profile reads and writes scoped to the caller's own user row"""

    def __init__(self, db: AuthDatabase):
        self.db = db

    async def _get_user(self, user_id: int) -> Dict[str, Any]:
        user = await self.db.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def get_profile(self, user_id: int) -> Dict[str, Any]:
        return project(UserProfileSchema, await self._get_user(user_id))

    async def update_profile(self, user_id: int, data: ProfileUpdateSchema) -> Dict[str, Any]:
        """
        Update name and email

        Email uniqueness is checked against other users only when it changes.
        """
        user = await self._get_user(user_id)

        if data.email != user['email'] and await self.db.email_taken_by_other_user(data.email, user_id):
            raise ConflictError("Email already in use")

        try:
            await self.db.update_user_profile(user_id, data.name, data.email)
        except asyncpg.UniqueViolationError:
            raise ConflictError("Email already in use")

        logger.info("Profile updated", user_id=user_id)

        return project(UserProfileSchema, await self._get_user(user_id))

    async def change_password(self, user_id: int, data: PasswordChangeSchema) -> None:
        user = await self._get_user(user_id)

        if not await verify_password(data.current_password, user['password']):
            logger.warning("Password change rejected", user_id=user_id)
            raise AuthError("Current password is incorrect")

        password_hash = await hash_password(data.new_password)
        await self.db.update_user_password(user_id, password_hash)

        logger.info("Password changed", user_id=user_id)
