"""
Downline network views.

The tree is built from level-1 closure rows (direct sponsorships), one
query per node, then sales and commission totals are filled in with two
grouped queries over every member collected.
"""
import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.config import settings
from mlm_commerce.core.exceptions import NotFoundError, service_operation
from mlm_commerce.models.commission import Commission, CommissionStatus
from mlm_commerce.models.order import Order, OrderStatus
from mlm_commerce.models.relationship import UserRelationship
from mlm_commerce.models.user import User
from mlm_commerce.services.commission_policy import quantize_money

logger = logging.getLogger(__name__)


class NetworkService:
    """Downline tree and team statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Tree ====================

    async def _build_network_tree(
        self,
        upline_id: uuid.UUID,
        current_level: int,
        max_level: int,
        visited: Set[uuid.UUID],
    ) -> List[Dict[str, Any]]:
        if current_level > max_level:
            return []

        result = await self.db.execute(
            select(User)
            .join(UserRelationship, UserRelationship.user_id == User.id)
            .where(
                UserRelationship.upline_id == upline_id,
                UserRelationship.relationship_level == 1,
            )
            .order_by(UserRelationship.created_at.asc())
        )

        nodes = []
        for member in result.scalars().all():
            if member.id in visited:
                logger.error(f"Member {member.id} reached twice below {upline_id}, skipping")
                continue
            visited.add(member.id)
            nodes.append({
                "user": member,
                "level": current_level,
                "children": await self._build_network_tree(
                    member.id, current_level + 1, max_level, visited
                ),
            })
        return nodes

    async def _sales_by_user(self, user_ids: List[uuid.UUID]) -> Dict[uuid.UUID, Decimal]:
        result = await self.db.execute(
            select(Order.user_id, func.coalesce(func.sum(Order.total), 0))
            .where(
                Order.user_id.in_(user_ids),
                Order.status == OrderStatus.COMPLETED.value,
            )
            .group_by(Order.user_id)
        )
        return {user_id: quantize_money(Decimal(str(total))) for user_id, total in result.all()}

    async def _commissions_by_user(self, user_ids: List[uuid.UUID]) -> Dict[uuid.UUID, Decimal]:
        result = await self.db.execute(
            select(Commission.recipient_id, func.coalesce(func.sum(Commission.amount), 0))
            .where(
                Commission.recipient_id.in_(user_ids),
                Commission.status.in_([CommissionStatus.PENDING.value, CommissionStatus.PAID.value]),
            )
            .group_by(Commission.recipient_id)
        )
        return {user_id: quantize_money(Decimal(str(total))) for user_id, total in result.all()}

    def _render(self, node: Dict[str, Any], sales: Dict, earned: Dict) -> Dict[str, Any]:
        user = node["user"]
        return {
            "id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role,
            "level": node["level"],
            "total_sales": sales.get(user.id, Decimal("0.00")),
            "commission_earned": earned.get(user.id, Decimal("0.00")),
            "is_active": user.is_active,
            "joined_at": user.created_at,
            "children": [self._render(child, sales, earned) for child in node["children"]],
        }

    @service_operation("Failed to get user network")
    async def get_user_network(
        self,
        user_id: uuid.UUID,
        max_level: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Nested downline of a member, at most max_level levels deep.

        total_members counts the root plus every member in the tree,
        total_levels is the deepest level reached.
        """
        if max_level is None:
            max_level = settings.NETWORK_MAX_DEPTH

        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        visited = {user_id}
        root = {
            "user": user,
            "level": 0,
            "children": await self._build_network_tree(user_id, 1, max_level, visited),
        }

        member_ids = list(visited)
        sales = await self._sales_by_user(member_ids)
        earned = await self._commissions_by_user(member_ids)

        total_levels = 0
        stack = list(root["children"])
        while stack:
            node = stack.pop()
            total_levels = max(total_levels, node["level"])
            stack.extend(node["children"])

        return {
            "root_user": self._render(root, sales, earned),
            "total_levels": total_levels,
            "total_members": len(visited),
            "max_levels": max_level,
        }

    # ==================== Stats ====================

    @service_operation("Failed to get network stats")
    async def get_network_stats(self, user_id: uuid.UUID) -> Dict[str, Any]:
        """Team size, completed sales and commissions, plus a per-level breakdown."""
        network = await self.get_user_network(user_id)

        members: Set[uuid.UUID] = set()
        levels: Dict[int, Dict[str, Any]] = defaultdict(
            lambda: {"members": 0, "total_sales": Decimal("0.00")}
        )

        # Pre-order walk
        stack = [network["root_user"]]
        while stack:
            node = stack.pop()
            if node["id"] in members:
                continue
            members.add(node["id"])
            if node["level"] > 0:
                levels[node["level"]]["members"] += 1
                levels[node["level"]]["total_sales"] += node["total_sales"]
            stack.extend(reversed(node["children"]))

        sales_result = await self.db.execute(
            select(func.coalesce(func.sum(Order.total), 0)).where(
                Order.user_id.in_(members),
                Order.status == OrderStatus.COMPLETED.value,
            )
        )
        commissions_result = await self.db.execute(
            select(func.coalesce(func.sum(Commission.amount), 0)).where(
                Commission.recipient_id.in_(members),
                Commission.status.in_([CommissionStatus.PENDING.value, CommissionStatus.PAID.value]),
            )
        )

        return {
            "total_members": len(members),
            "total_sales": quantize_money(Decimal(str(sales_result.scalar() or 0))),
            "total_commissions": quantize_money(Decimal(str(commissions_result.scalar() or 0))),
            "levels": [
                {"level": level, **stats}
                for level, stats in sorted(levels.items())
            ],
        }
