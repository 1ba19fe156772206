"""Commission ledger and level rate models.

Supports:
- Level rate table (direct / indirect / points rate per tier level)
- Commission ledger rows, one per (order, recipient)
- Point balances for members paid beyond the currency depth
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from mlm_commerce.database import Base
from mlm_commerce.db_types import UUIDType, MoneyType, RateType, PercentType


class CommissionType(str, Enum):
    """Commission type enumeration."""
    DIRECT = "DIRECT"       # Paid to the buyer's direct sponsor (level 1)
    INDIRECT = "INDIRECT"   # Paid to ancestors at level 2 and above


class CommissionStatus(str, Enum):
    """Commission ledger status."""
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class CommissionTier(Base):
    """
    Level rate table.

    Level 1 pays direct_commission_rate, deeper levels pay
    indirect_commission_rate. points_rate is the percent of the sale value
    converted to points where a scheme pays that level in points.
    """
    __tablename__ = "commission_tiers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    tier_level: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    direct_commission_rate: Mapped[Decimal] = mapped_column(RateType, default=Decimal("0"), nullable=False)
    indirect_commission_rate: Mapped[Decimal] = mapped_column(RateType, default=Decimal("0"), nullable=False)
    points_rate: Mapped[Decimal] = mapped_column(PercentType, default=Decimal("0"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<CommissionTier(level={self.tier_level}, name='{self.name}')>"


class Commission(Base):
    """Commission ledger entry paid to an upline member for an order."""
    __tablename__ = "commissions"
    __table_args__ = (
        UniqueConstraint("order_id", "recipient_id", name="uq_commission_order_recipient"),
        Index("ix_commissions_recipient_status", "recipient_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    # Buyer who placed the order
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    relationship_level: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="DIRECT, INDIRECT"
    )
    status: Mapped[str] = mapped_column(
        String(50),
        default=CommissionStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="PENDING, PAID, CANCELLED, REJECTED"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Commission(order={self.order_id}, recipient={self.recipient_id}, amount={self.amount})>"


class UserPoints(Base):
    """Running point balance per member."""
    __tablename__ = "user_points"

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
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )
