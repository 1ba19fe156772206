"""
Commission Service

Writes commission ledger rows for completed orders and serves commission
reporting.

Flow:
1. Order becomes COMPLETED or PAID -> OrderService calls process_order_commission
2. The order is claimed (commissions_processed_at), so a second call is a no-op
3. The buyer's upline chain is resolved and the active policy builds the plan
4. One PENDING row per recipient is inserted, point awards are upserted
5. Admin batch marks PENDING rows PAID
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, List, Dict, Any

from sqlalchemy import select, update, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.config import settings
from mlm_commerce.core.exceptions import NotFoundError, BadRequestError, service_operation
from mlm_commerce.models.commission import Commission, CommissionStatus
from mlm_commerce.models.order import Order
from mlm_commerce.models.product import Product
from mlm_commerce.models.product_commission import (
    ProductCommissionTier,
    VolumeBonusTier,
    UserRoleType,
)
from mlm_commerce.models.user import User
from mlm_commerce.services.commission_policy import (
    CommissionPolicy,
    RateTable,
    get_commission_policy,
    quantize_money,
    seller_commission_rate,
)
from mlm_commerce.services.points_service import PointsService
from mlm_commerce.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)

# Statuses that still count towards what a member has earned
EARNING_STATUSES = (CommissionStatus.PENDING.value, CommissionStatus.PAID.value)

# Role labels shown on the commission structure page
ROLE_STRUCTURE = [
    {"name": "Sales", "commission_rate": Decimal("0.30"), "level": 1},
    {"name": "Leader", "commission_rate": Decimal("0.10"), "level": 2},
    {"name": "Manager", "commission_rate": Decimal("0.05"), "level": 3},
]

ALLOWED_TRANSITIONS = {
    CommissionStatus.PENDING.value: {
        CommissionStatus.PAID.value,
        CommissionStatus.CANCELLED.value,
        CommissionStatus.REJECTED.value,
    },
}


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class CommissionService:
    """Commission ledger operations."""

    def __init__(self, db: AsyncSession, policy: Optional[CommissionPolicy] = None):
        self.db = db
        self.policy = policy or get_commission_policy()

    # ==================== Processing ====================

    async def _claim_order(self, order_id: uuid.UUID) -> bool:
        """Mark the order as processed. False when another run already did."""
        result = await self.db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.commissions_processed_at.is_(None),
            )
            .values(commissions_processed_at=datetime.now(timezone.utc))
        )
        return result.rowcount == 1

    @service_operation("Failed to process commission")
    async def process_order_commission(self, order_id: uuid.UUID) -> List[Commission]:
        """
        Pay the buyer's upline for an order.

        Returns the rows inserted by this call; empty when the buyer has no
        upline or the order was already processed.

        Raises:
            NotFoundError: order does not exist
            BadRequestError: order has no items
        """
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        if not order.items:
            raise BadRequestError("Order has no items")

        if not await self._claim_order(order_id):
            logger.info(f"Commissions already processed for order {order.order_number}, skipping")
            return []

        chain = await RelationshipService(self.db).get_upline_chain(
            order.user_id, settings.COMMISSION_MAX_LEVELS
        )
        rate_table = await RateTable.load(self.db)
        plan = await self.policy.calculate(self.db, order, chain, rate_table)

        commissions = []
        for line in plan.lines:
            commission = Commission(
                order_id=order.id,
                user_id=order.user_id,
                recipient_id=line.recipient_id,
                amount=line.amount,
                commission_rate=line.rate,
                relationship_level=line.level,
                type=line.type.value,
                status=CommissionStatus.PENDING.value,
            )
            self.db.add(commission)
            commissions.append(commission)

        points_service = PointsService(self.db)
        for award in plan.points:
            await points_service.add_user_points(award.recipient_id, award.points)

        await self.db.commit()

        logger.info(
            f"Processed {len(commissions)} commissions totalling {plan.total_amount} "
            f"and {len(plan.points)} point awards for order {order.order_number} ({self.policy.name})"
        )
        return commissions

    # ==================== Status ====================

    async def get_commission_details(self, commission_id: uuid.UUID) -> Commission:
        commission = await self.db.get(Commission, commission_id)
        if not commission:
            raise NotFoundError("Commission not found")
        return commission

    @service_operation("Failed to update commission status")
    async def update_commission_status(
        self,
        commission_id: uuid.UUID,
        status: CommissionStatus,
    ) -> Commission:
        """Move a PENDING commission to PAID, CANCELLED or REJECTED."""
        commission = await self.get_commission_details(commission_id)
        new_status = CommissionStatus(status).value

        if new_status not in ALLOWED_TRANSITIONS.get(commission.status, set()):
            raise BadRequestError(
                "Invalid status transition",
                details={"from": commission.status, "to": new_status},
            )

        commission.status = new_status
        if new_status == CommissionStatus.PAID.value:
            commission.paid_at = datetime.now(timezone.utc)

        await self.db.commit()
        await self.db.refresh(commission)
        logger.info(f"Commission {commission_id} moved to {new_status}")
        return commission

    @service_operation("Failed to process commissions")
    async def process_pending_commissions(self, commission_ids: List[uuid.UUID]) -> int:
        """Mark the given PENDING commissions PAID. Returns rows updated."""
        if not commission_ids:
            raise BadRequestError("No commission ids provided")

        result = await self.db.execute(
            update(Commission)
            .where(
                Commission.id.in_(commission_ids),
                Commission.status == CommissionStatus.PENDING.value,
            )
            .values(
                status=CommissionStatus.PAID.value,
                paid_at=datetime.now(timezone.utc),
            )
        )
        await self.db.commit()

        logger.info(f"Paid {result.rowcount} of {len(commission_ids)} requested commissions")
        return result.rowcount

    # ==================== Reporting ====================

    @service_operation("Failed to get user commissions")
    async def get_user_commissions(
        self,
        user_id: uuid.UUID,
        kind: str = "earned",
        skip: int = 0,
        limit: int = 50,
    ) -> List[Commission]:
        """Commissions received (earned) or caused by own orders (generated)."""
        if kind == "earned":
            condition = Commission.recipient_id == user_id
        elif kind == "generated":
            condition = Commission.user_id == user_id
        else:
            raise BadRequestError(f"Unknown commission kind: {kind}")

        if not await self.db.get(User, user_id):
            raise NotFoundError("User not found")

        result = await self.db.execute(
            select(Commission)
            .where(condition)
            .order_by(Commission.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _sum_amount(self, *conditions) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Commission.amount), 0)).where(*conditions)
        )
        return quantize_money(Decimal(str(result.scalar() or 0)))

    @service_operation("Failed to get commission stats")
    async def get_commission_stats(
        self,
        user_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> Dict[str, Decimal]:
        """Totals of a member's received commissions."""
        if not await self.db.get(User, user_id):
            raise NotFoundError("User not found")

        now = now or datetime.now(timezone.utc)
        this_month = _month_start(now)
        last_month = _month_start(this_month - timedelta(days=1))

        mine = Commission.recipient_id == user_id
        earning = Commission.status.in_(EARNING_STATUSES)

        return {
            "total_earned": await self._sum_amount(mine, earning),
            "total_pending": await self._sum_amount(mine, Commission.status == CommissionStatus.PENDING.value),
            "total_paid": await self._sum_amount(mine, Commission.status == CommissionStatus.PAID.value),
            "this_month": await self._sum_amount(mine, earning, Commission.created_at >= this_month),
            "last_month": await self._sum_amount(
                mine,
                earning,
                Commission.created_at >= last_month,
                Commission.created_at < this_month,
            ),
        }

    @service_operation("Failed to get commission summary")
    async def get_commission_summary(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Company-wide totals and the ten highest earners for a period."""
        conditions = []
        if start_date:
            conditions.append(Commission.created_at >= start_date)
        if end_date:
            conditions.append(Commission.created_at <= end_date)

        count_result = await self.db.execute(
            select(func.count(Commission.id)).where(*conditions)
        )

        earned = func.sum(Commission.amount).label("total_earned")
        top_result = await self.db.execute(
            select(
                Commission.recipient_id,
                User.email,
                User.first_name,
                User.last_name,
                earned,
            )
            .join(User, User.id == Commission.recipient_id)
            .where(and_(*conditions, Commission.status.in_(EARNING_STATUSES)))
            .group_by(Commission.recipient_id, User.email, User.first_name, User.last_name)
            .order_by(earned.desc())
            .limit(10)
        )

        return {
            "total_paid": await self._sum_amount(*conditions, Commission.status == CommissionStatus.PAID.value),
            "total_pending": await self._sum_amount(*conditions, Commission.status == CommissionStatus.PENDING.value),
            "total_commissions": count_result.scalar() or 0,
            "top_earners": [
                {
                    "recipient_id": row.recipient_id,
                    "email": row.email,
                    "first_name": row.first_name,
                    "last_name": row.last_name,
                    "total_earned": quantize_money(Decimal(str(row.total_earned))),
                }
                for row in top_result.all()
            ],
        }

    # ==================== Structure ====================

    async def get_product_commission_structure(self) -> Dict[str, Any]:
        """Role labels, level rates, product tiers and volume bonus tiers."""
        rate_table = await RateTable.load(self.db)

        tiers_result = await self.db.execute(
            select(ProductCommissionTier, Product.name)
            .join(Product, Product.id == ProductCommissionTier.product_id)
            .order_by(ProductCommissionTier.retail_price)
        )
        bonus_result = await self.db.execute(
            select(VolumeBonusTier).order_by(VolumeBonusTier.min_volume)
        )
        roles_result = await self.db.execute(
            select(UserRoleType).order_by(UserRoleType.commission_multiplier)
        )

        return {
            "role_types": ROLE_STRUCTURE,
            "level_rates": rate_table.as_dict(),
            "seller_roles": [
                {"name": role.name, "commission_multiplier": role.commission_multiplier}
                for role in roles_result.scalars().all()
            ],
            "product_tiers": [
                {
                    "product_id": tier.product_id,
                    "product_name": name,
                    "retail_price": tier.retail_price,
                    "trader_price": tier.trader_price,
                    "distributor_price": tier.distributor_price,
                    "trader_commission_min": tier.trader_commission_min,
                    "trader_commission_max": tier.trader_commission_max,
                    "distributor_commission_min": tier.distributor_commission_min,
                    "distributor_commission_max": tier.distributor_commission_max,
                }
                for tier, name in tiers_result.all()
            ],
            "volume_bonus_tiers": [
                {
                    "min_volume": tier.min_volume,
                    "max_volume": tier.max_volume,
                    "bonus_percentage": tier.bonus_percentage,
                }
                for tier in bonus_result.scalars().all()
            ],
        }

    @service_operation("Failed to calculate product commission")
    async def calculate_product_commission(
        self,
        product_id: uuid.UUID,
        quantity: int,
        seller_id: uuid.UUID,
    ) -> Dict[str, Any]:
        """Preview what a seller would earn on a product sale."""
        if quantity <= 0:
            raise BadRequestError("Quantity must be positive")
        if not await self.db.get(User, seller_id):
            raise NotFoundError("User not found")

        result = await self.db.execute(
            select(ProductCommissionTier).where(ProductCommissionTier.product_id == product_id)
        )
        tier = result.scalar_one_or_none()

        points_service = PointsService(self.db)
        seller_role = await points_service.get_seller_role(seller_id)
        sales_volume = await points_service.get_seller_volume(seller_id)
        bonus = await points_service.get_volume_bonus(sales_volume)

        rate = Decimal("0")
        amount = Decimal("0")
        if tier is not None:
            rate = seller_commission_rate(tier, seller_role, bonus)
            amount = quantize_money(Decimal(str(tier.retail_price)) * quantity * rate / 100)

        return {
            "product_id": product_id,
            "quantity": quantity,
            "seller_role": seller_role,
            "sales_volume": sales_volume,
            "volume_bonus": bonus,
            "commission_rate": rate,
            "commission_amount": amount,
        }
