"""
Sponsor tree service.

All writes to User.upline_id and the user_relationships closure table go
through create_user_relationship, which keeps both acyclic and keeps one
closure row per (member, level).
"""
import logging
import uuid
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.config import settings
from mlm_commerce.core.exceptions import NotFoundError, BadRequestError, service_operation
from mlm_commerce.models.user import User
from mlm_commerce.models.relationship import UserRelationship

logger = logging.getLogger(__name__)


class RelationshipService:
    """Upline chain lookups and sponsor assignment."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Upline ====================

    async def get_upline(self, user_id: uuid.UUID) -> Optional[uuid.UUID]:
        """Direct sponsor of a member, or None for a root account."""
        result = await self.db.execute(
            select(UserRelationship.upline_id)
            .where(UserRelationship.user_id == user_id)
            .order_by(UserRelationship.relationship_level.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @service_operation("Failed to get upline chain")
    async def get_upline_chain(
        self,
        user_id: uuid.UUID,
        max_levels: Optional[int] = None,
    ) -> List[uuid.UUID]:
        """
        Walk the sponsor chain upwards.

        Returns ancestor ids where index i holds the level i+1 ancestor.
        Stops after max_levels hops or at the root. A repeated ancestor
        ends the walk so the result never contains duplicates.
        """
        if max_levels is None:
            max_levels = settings.COMMISSION_MAX_LEVELS

        chain: List[uuid.UUID] = []
        visited = {user_id}
        current = user_id

        while len(chain) < max_levels:
            upline_id = await self.get_upline(current)
            if upline_id is None:
                break
            if upline_id in visited:
                logger.error(f"Cycle detected in upline chain of {user_id} at {upline_id}")
                break
            visited.add(upline_id)
            chain.append(upline_id)
            current = upline_id

        return chain

    # ==================== Downline ====================

    async def get_downlines(
        self,
        user_id: uuid.UUID,
        max_level: Optional[int] = None,
    ) -> List[UserRelationship]:
        """Closure rows of every member below user_id, nearest first."""
        query = select(UserRelationship).where(UserRelationship.upline_id == user_id)
        if max_level is not None:
            query = query.where(UserRelationship.relationship_level <= max_level)
        query = query.order_by(UserRelationship.relationship_level.asc(), UserRelationship.created_at.asc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ==================== Sponsor assignment ====================

    @service_operation("Failed to create relationship")
    async def create_user_relationship(
        self,
        user_id: uuid.UUID,
        upline_id: uuid.UUID,
    ) -> UserRelationship:
        """
        Attach user_id under upline_id.

        Writes the level-1 row plus one row per ancestor of the new sponsor,
        for the member and for every member already below it.

        Raises:
            NotFoundError: user or upline does not exist
            BadRequestError: self reference, duplicate pair, existing
                sponsor, or upline_id already below user_id
        """
        if user_id == upline_id:
            raise BadRequestError("User cannot be their own upline")

        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        upline = await self.db.get(User, upline_id)
        if not upline:
            raise NotFoundError("Upline user not found")

        existing = await self.db.execute(
            select(UserRelationship.id).where(
                UserRelationship.user_id == user_id,
                UserRelationship.upline_id == upline_id,
            )
        )
        if existing.scalar_one_or_none():
            raise BadRequestError("Relationship already exists")

        upline_chain = await self.get_upline_chain(upline_id, settings.CYCLE_CHECK_DEPTH)
        if user_id in upline_chain:
            raise BadRequestError("Circular reference detected")

        if await self.get_upline(user_id) is not None or user.upline_id is not None:
            raise BadRequestError("User already has an upline")

        # Sponsor plus the sponsor's own ancestors, nearest first
        ancestor_rows = await self.db.execute(
            select(UserRelationship.upline_id)
            .where(UserRelationship.user_id == upline_id)
            .order_by(UserRelationship.relationship_level.asc())
        )
        ancestors = [upline_id] + list(ancestor_rows.scalars().all())

        # The member itself at depth 0, then its existing subtree
        subtree = [(user_id, 0)] + [
            (row.user_id, row.relationship_level)
            for row in await self.get_downlines(user_id)
        ]
        if any(member_id in ancestors for member_id, _ in subtree):
            raise BadRequestError("Circular reference detected")

        direct_row = None
        for member_id, depth in subtree:
            for distance, ancestor_id in enumerate(ancestors, start=1):
                row = UserRelationship(
                    user_id=member_id,
                    upline_id=ancestor_id,
                    relationship_level=depth + distance,
                )
                self.db.add(row)
                if member_id == user_id and distance == 1:
                    direct_row = row

        user.upline_id = upline_id
        await self.db.commit()
        await self.db.refresh(direct_row)

        logger.info(
            f"Attached {user.email} under {upline.email}: "
            f"{len(subtree) * len(ancestors)} closure rows written"
        )
        return direct_row

    async def is_descendant(self, user_id: uuid.UUID, ancestor_id: uuid.UUID) -> bool:
        """True when ancestor_id appears anywhere above user_id."""
        result = await self.db.execute(
            select(UserRelationship.id).where(
                UserRelationship.user_id == user_id,
                UserRelationship.upline_id == ancestor_id,
            )
        )
        return result.scalar_one_or_none() is not None
