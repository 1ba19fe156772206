"""Pydantic schemas for the commission ledger."""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict
from uuid import UUID

from pydantic import BaseModel, Field

from mlm_commerce.models.commission import CommissionStatus
from mlm_commerce.schemas.base import BaseResponseSchema, BaseCreateSchema


# ==================== Commission Schemas ====================

class CommissionResponse(BaseResponseSchema):
    id: UUID
    order_id: UUID
    user_id: UUID
    recipient_id: UUID
    amount: Decimal
    commission_rate: Decimal
    relationship_level: int
    type: str
    status: str
    created_at: datetime
    paid_at: Optional[datetime] = None


class CommissionStatusUpdate(BaseModel):
    status: CommissionStatus


class ProcessPendingRequest(BaseCreateSchema):
    commission_ids: List[UUID] = Field(..., min_length=1)


class ProcessPendingResponse(BaseModel):
    requested: int
    paid: int


class OrderCommissionResponse(BaseModel):
    """Rows written by one processing run; empty when already processed."""
    order_id: UUID
    created: int
    commissions: List[CommissionResponse]


# ==================== Reporting Schemas ====================

class CommissionStatsResponse(BaseModel):
    total_earned: Decimal
    total_pending: Decimal
    total_paid: Decimal
    this_month: Decimal
    last_month: Decimal


class TopEarner(BaseModel):
    recipient_id: UUID
    email: str
    first_name: str
    last_name: Optional[str] = None
    total_earned: Decimal


class CommissionSummaryResponse(BaseModel):
    total_paid: Decimal
    total_pending: Decimal
    total_commissions: int
    top_earners: List[TopEarner]


# ==================== Structure Schemas ====================

class RoleStructure(BaseModel):
    name: str
    commission_rate: Decimal
    level: int


class SellerRoleInfo(BaseModel):
    name: str
    commission_multiplier: Decimal


class ProductTierInfo(BaseModel):
    product_id: UUID
    product_name: str
    retail_price: Decimal
    trader_price: Decimal
    distributor_price: Decimal
    trader_commission_min: Decimal
    trader_commission_max: Decimal
    distributor_commission_min: Decimal
    distributor_commission_max: Decimal


class VolumeBonusInfo(BaseModel):
    min_volume: Decimal
    max_volume: Optional[Decimal] = None
    bonus_percentage: Decimal


class CommissionStructureResponse(BaseModel):
    role_types: List[RoleStructure]
    level_rates: Dict[int, Decimal]
    seller_roles: List[SellerRoleInfo]
    product_tiers: List[ProductTierInfo]
    volume_bonus_tiers: List[VolumeBonusInfo]


class ProductCommissionPreview(BaseModel):
    product_id: UUID
    quantity: int
    seller_role: str
    sales_volume: Decimal
    volume_bonus: Decimal
    commission_rate: Decimal = Field(..., description="Percent, e.g. 12.00")
    commission_amount: Decimal
