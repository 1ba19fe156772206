"""
Commission policies.

A policy turns an order and the buyer's upline chain into a CommissionPlan:
currency lines (one per recipient) and point awards. CommissionService
persists the plan; policies never write.

- LevelRatePolicy: order total x level rate (30/10/5/5). Default scheme.
- ProductTierPolicy: per order item. Level 1 earns the seller's product
  rate (role range plus volume bonus, capped), level 2 the level-2 rate on
  the item's retail value, levels 3+ earn points.
"""
import logging
import math
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.config import settings
from mlm_commerce.models.commission import CommissionTier, CommissionType
from mlm_commerce.models.order import Order
from mlm_commerce.models.product_commission import ProductCommissionTier
from mlm_commerce.services.points_service import PointsService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
RATE_PRECISION = Decimal("0.0001")

# Level -> fraction of the order total
DEFAULT_LEVEL_RATES: Dict[int, Decimal] = {
    1: Decimal("0.30"),
    2: Decimal("0.10"),
    3: Decimal("0.05"),
    4: Decimal("0.05"),
}

# Level -> percent of sale value converted to points
DEFAULT_POINTS_RATES: Dict[int, Decimal] = {
    3: Decimal("10"),
    4: Decimal("5"),
}


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def commission_type_for_level(level: int) -> CommissionType:
    return CommissionType.DIRECT if level == 1 else CommissionType.INDIRECT


# ==================== Rate Table ====================

class RateTable:
    """Level to rate lookup, backed by commission_tiers."""

    def __init__(
        self,
        rates: Optional[Dict[int, Decimal]] = None,
        points_rates: Optional[Dict[int, Decimal]] = None,
    ):
        self.rates = dict(DEFAULT_LEVEL_RATES if rates is None else rates)
        self.points_rates = dict(DEFAULT_POINTS_RATES if points_rates is None else points_rates)

    @classmethod
    async def load(cls, db: AsyncSession) -> "RateTable":
        """Build from commission_tiers; defaults when the table is empty."""
        result = await db.execute(select(CommissionTier).order_by(CommissionTier.tier_level))
        tiers = result.scalars().all()
        if not tiers:
            return cls()

        rates = {}
        points_rates = {}
        for tier in tiers:
            rate = tier.direct_commission_rate if tier.tier_level == 1 else tier.indirect_commission_rate
            rates[tier.tier_level] = Decimal(str(rate))
            points_rates[tier.tier_level] = Decimal(str(tier.points_rate))
        return cls(rates, points_rates)

    def rate_for_level(self, level: int) -> Decimal:
        return self.rates.get(level, Decimal("0"))

    def points_rate_for_level(self, level: int) -> Decimal:
        return self.points_rates.get(level, Decimal("0"))

    def as_dict(self) -> Dict[int, Decimal]:
        return dict(sorted(self.rates.items()))


# ==================== Plan ====================

@dataclass
class CommissionLine:
    """Currency owed to one upline member."""
    recipient_id: uuid.UUID
    level: int
    amount: Decimal
    rate: Decimal

    @property
    def type(self) -> CommissionType:
        return commission_type_for_level(self.level)


@dataclass
class PointsAward:
    """Points owed to one upline member."""
    recipient_id: uuid.UUID
    level: int
    points: int


@dataclass
class CommissionPlan:
    """Everything one order pays out."""
    lines: List[CommissionLine] = field(default_factory=list)
    points: List[PointsAward] = field(default_factory=list)

    @property
    def total_amount(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal("0"))


# ==================== Policies ====================

class CommissionPolicy(ABC):
    """Computes the payout plan for an order."""

    name: str = ""

    @abstractmethod
    async def calculate(
        self,
        db: AsyncSession,
        order: Order,
        chain: List[uuid.UUID],
        rate_table: RateTable,
    ) -> CommissionPlan:
        """
        Args:
            order: order with items loaded
            chain: buyer's upline ids, index i = level i+1
            rate_table: level rates in effect
        """
        pass


class LevelRatePolicy(CommissionPolicy):
    """Order total x level rate. Levels whose rate is 0 are skipped."""

    name = "ORDER_TOTAL"

    async def calculate(self, db, order, chain, rate_table):
        plan = CommissionPlan()
        total = Decimal(str(order.total))

        for level, recipient_id in enumerate(chain, start=1):
            rate = rate_table.rate_for_level(level)
            if rate <= 0:
                continue
            plan.lines.append(CommissionLine(
                recipient_id=recipient_id,
                level=level,
                amount=quantize_money(total * rate),
                rate=rate,
            ))

        return plan


def seller_commission_rate(
    tier: ProductCommissionTier,
    role_name: str,
    bonus_percentage: Decimal,
) -> Decimal:
    """
    Seller's percent rate for a product.

    Starts at the role's minimum; a positive volume bonus is added in
    percentage points, never exceeding the role's maximum.
    """
    min_rate, max_rate = tier.rate_range(role_name)
    min_rate = Decimal(str(min_rate))
    max_rate = Decimal(str(max_rate))
    if bonus_percentage > 0:
        return min(min_rate + bonus_percentage, max_rate)
    return min_rate


class ProductTierPolicy(CommissionPolicy):
    """
    Per item, priced on the product tier's retail price.

    Items without a product tier pay nothing. Amounts for one recipient are
    summed across items into a single line whose rate is the effective rate
    on the retail value.
    """

    name = "PRODUCT_TIER"

    # Deepest level paid in currency; deeper levels earn points
    currency_depth = 2

    async def calculate(self, db, order, chain, rate_table):
        plan = CommissionPlan()
        if not chain or not order.items:
            return plan

        product_ids = [item.product_id for item in order.items]
        result = await db.execute(
            select(ProductCommissionTier).where(ProductCommissionTier.product_id.in_(product_ids))
        )
        tiers = {tier.product_id: tier for tier in result.scalars().all()}

        points_service = PointsService(db)
        seller_id = chain[0]
        seller_role = await points_service.get_seller_role(seller_id)
        seller_volume = await points_service.get_seller_volume(seller_id)
        bonus = await points_service.get_volume_bonus(seller_volume)

        amounts: Dict[int, Decimal] = defaultdict(Decimal)
        bases: Dict[int, Decimal] = defaultdict(Decimal)
        points: Dict[int, int] = defaultdict(int)

        for item in order.items:
            tier = tiers.get(item.product_id)
            if tier is None:
                logger.debug(f"No product commission tier for product {item.product_id}, skipping")
                continue

            base = Decimal(str(tier.retail_price)) * item.quantity

            for level in range(1, len(chain) + 1):
                if level == 1:
                    rate = seller_commission_rate(tier, seller_role, bonus) / 100
                elif level <= self.currency_depth:
                    rate = rate_table.rate_for_level(level)
                else:
                    points_rate = rate_table.points_rate_for_level(level)
                    points[level] += math.floor(base * points_rate / 100)
                    continue

                amounts[level] += base * rate
                bases[level] += base

        for level, recipient_id in enumerate(chain, start=1):
            amount = quantize_money(amounts.get(level, Decimal("0")))
            if amount > 0:
                plan.lines.append(CommissionLine(
                    recipient_id=recipient_id,
                    level=level,
                    amount=amount,
                    rate=(amounts[level] / bases[level]).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP),
                ))
            if points.get(level, 0) > 0:
                plan.points.append(PointsAward(
                    recipient_id=recipient_id,
                    level=level,
                    points=points[level],
                ))

        logger.debug(
            f"Product tier plan for order {order.order_number}: seller role {seller_role}, "
            f"volume {seller_volume}, bonus {bonus}%"
        )
        return plan


POLICIES = {
    LevelRatePolicy.name: LevelRatePolicy,
    ProductTierPolicy.name: ProductTierPolicy,
}


def get_commission_policy(scheme: Optional[str] = None) -> CommissionPolicy:
    """Policy for a scheme name, the configured scheme by default."""
    scheme = (scheme or settings.COMMISSION_SCHEME).upper()
    try:
        return POLICIES[scheme]()
    except KeyError:
        raise ValueError(f"Unknown commission scheme: {scheme}")
