"""
Points balances and volume bonus lookups.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.config import settings
from mlm_commerce.core.exceptions import BadRequestError, service_operation
from mlm_commerce.models.commission import UserPoints
from mlm_commerce.models.order import Order, OrderStatus
from mlm_commerce.models.product_commission import (
    VolumeBonusTier,
    UserRoleType,
    UserRoleAssignment,
    SellerRole,
)

logger = logging.getLogger(__name__)


class PointsService:
    """Point balances, seller roles and sales volume."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Points ====================

    async def get_user_points(self, user_id: uuid.UUID) -> int:
        """Point balance of a member, 0 when none recorded."""
        result = await self.db.execute(
            select(UserPoints.total_points).where(UserPoints.user_id == user_id)
        )
        return result.scalar_one_or_none() or 0

    async def add_user_points(self, user_id: uuid.UUID, points: int) -> int:
        """
        Add points to a member's balance, creating it if absent.

        Flushes but does not commit, so callers can include the award in a
        larger unit of work. Returns the new balance.
        """
        if points < 0:
            raise BadRequestError("Points must not be negative")

        result = await self.db.execute(
            select(UserPoints).where(UserPoints.user_id == user_id)
        )
        balance = result.scalar_one_or_none()
        if balance:
            balance.total_points += points
        else:
            balance = UserPoints(user_id=user_id, total_points=points)
            self.db.add(balance)

        await self.db.flush()
        logger.debug(f"Added {points} points to user {user_id}, balance {balance.total_points}")
        return balance.total_points

    # ==================== Volume bonus ====================

    async def get_volume_bonus(self, volume: Decimal) -> Decimal:
        """Bonus percent for the tier whose [min, max) range holds volume."""
        result = await self.db.execute(
            select(VolumeBonusTier.bonus_percentage)
            .where(
                VolumeBonusTier.min_volume <= volume,
                or_(VolumeBonusTier.max_volume.is_(None), VolumeBonusTier.max_volume > volume),
            )
            .order_by(VolumeBonusTier.min_volume.desc())
            .limit(1)
        )
        bonus = result.scalar_one_or_none()
        return Decimal(str(bonus)) if bonus is not None else Decimal("0")

    async def get_seller_volume(
        self,
        seller_id: uuid.UUID,
        as_of: Optional[datetime] = None,
    ) -> Decimal:
        """Sum of the seller's completed order totals over the trailing window."""
        as_of = as_of or datetime.now(timezone.utc)
        window_start = as_of - timedelta(days=settings.VOLUME_WINDOW_DAYS)

        result = await self.db.execute(
            select(func.coalesce(func.sum(Order.total), 0))
            .where(
                Order.user_id == seller_id,
                Order.status == OrderStatus.COMPLETED.value,
                Order.created_at >= window_start,
                Order.created_at <= as_of,
            )
        )
        return Decimal(str(result.scalar() or 0))

    # ==================== Seller roles ====================

    async def get_seller_role(self, user_id: uuid.UUID) -> str:
        """Role type name of a seller, Distributor when unassigned."""
        result = await self.db.execute(
            select(UserRoleType.name)
            .join(UserRoleAssignment, UserRoleAssignment.role_type_id == UserRoleType.id)
            .where(UserRoleAssignment.user_id == user_id)
        )
        return result.scalar_one_or_none() or SellerRole.DISTRIBUTOR.value

    @service_operation("Failed to assign seller role")
    async def assign_seller_role(self, user_id: uuid.UUID, role_name: str) -> UserRoleAssignment:
        result = await self.db.execute(
            select(UserRoleType).where(UserRoleType.name == role_name)
        )
        role_type = result.scalar_one_or_none()
        if not role_type:
            raise BadRequestError(f"Unknown seller role: {role_name}")

        result = await self.db.execute(
            select(UserRoleAssignment).where(UserRoleAssignment.user_id == user_id)
        )
        assignment = result.scalar_one_or_none()
        if assignment:
            assignment.role_type_id = role_type.id
        else:
            assignment = UserRoleAssignment(user_id=user_id, role_type_id=role_type.id)
            self.db.add(assignment)

        await self.db.commit()
        await self.db.refresh(assignment)
        return assignment
