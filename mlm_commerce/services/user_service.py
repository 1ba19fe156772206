"""Member registration and lookups."""
import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.config import settings
from mlm_commerce.core.exceptions import NotFoundError, BadRequestError, service_operation
from mlm_commerce.models.user import User, UserRole
from mlm_commerce.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)


class UserService:
    """Creates members and attaches them to their sponsor."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @service_operation("Failed to create user")
    async def create_user(
        self,
        email: str,
        first_name: str,
        last_name: Optional[str] = None,
        role: UserRole = UserRole.CUSTOMER,
        upline_id: Optional[uuid.UUID] = None,
    ) -> User:
        """
        Register a member, optionally under a sponsor (the referrer).

        The sponsor is checked before the member is written so a bad
        referrer leaves nothing behind.
        """
        if await self.get_user_by_email(email):
            raise BadRequestError("Email already registered")
        if upline_id is not None and not await self.db.get(User, upline_id):
            raise NotFoundError("Upline user not found")

        user = User(
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
            role=UserRole(role).value,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        if upline_id is not None:
            await RelationshipService(self.db).create_user_relationship(user.id, upline_id)
            await self.db.refresh(user)

        logger.info(f"Registered user {user.email}" + (f" under {upline_id}" if upline_id else ""))
        return user

    async def get_referral_link(self, user_id: uuid.UUID) -> str:
        """Registration URL that makes user_id the new member's sponsor."""
        await self.get_user(user_id)
        return f"{settings.APP_URL.rstrip('/')}/auth/register?referrer={user_id}"
