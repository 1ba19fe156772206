"""Per-product commission scheme.

A seller's rate for a product comes from the product's tier range for the
seller's role (trader or distributor), raised by the volume bonus for the
seller's recent sales and capped at the range maximum.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from mlm_commerce.database import Base
from mlm_commerce.db_types import UUIDType, MoneyType, PercentType


class SellerRole(str, Enum):
    """Role type names used to pick a product tier range."""
    DISTRIBUTOR = "Distributor"
    TRADER = "Trader"


class ProductCommissionTier(Base):
    """Price points and commission ranges (percent) for one product."""
    __tablename__ = "product_commission_tiers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    # Price points
    retail_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    trader_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    distributor_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Commission ranges
    trader_commission_min: Mapped[Decimal] = mapped_column(PercentType, nullable=False)
    trader_commission_max: Mapped[Decimal] = mapped_column(PercentType, nullable=False)
    distributor_commission_min: Mapped[Decimal] = mapped_column(PercentType, nullable=False)
    distributor_commission_max: Mapped[Decimal] = mapped_column(PercentType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def rate_range(self, role_name: str) -> tuple[Decimal, Decimal]:
        if role_name == SellerRole.TRADER.value:
            return self.trader_commission_min, self.trader_commission_max
        return self.distributor_commission_min, self.distributor_commission_max


class VolumeBonusTier(Base):
    """Bonus percent for sales volume in [min_volume, max_volume)."""
    __tablename__ = "volume_bonus_tiers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    min_volume: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    max_volume: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)  # NULL = open ended
    bonus_percentage: Mapped[Decimal] = mapped_column(PercentType, nullable=False)


class UserRoleType(Base):
    """Seller role (Distributor, Trader)."""
    __tablename__ = "user_role_types"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    commission_multiplier: Mapped[Decimal] = mapped_column(PercentType, default=Decimal("1.0"), nullable=False)


class UserRoleAssignment(Base):
    """Assigns a seller role to a member. Unassigned members sell as Distributor."""
    __tablename__ = "user_role_assignments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )
    role_type_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("user_role_types.id", ondelete="RESTRICT"),
        nullable=False
    )
