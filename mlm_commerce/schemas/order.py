"""Pydantic schemas for orders."""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from mlm_commerce.models.order import OrderStatus, PaymentStatus
from mlm_commerce.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


class OrderItemCreate(BaseCreateSchema):
    product_id: UUID
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseCreateSchema):
    user_id: UUID
    items: List[OrderItemCreate] = Field(..., min_length=1)
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = None


class OrderUpdate(BaseUpdateSchema):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = None


class OrderItemResponse(BaseResponseSchema):
    id: UUID
    product_id: UUID
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    pv_points: int


class OrderResponse(BaseResponseSchema):
    id: UUID
    order_number: str
    user_id: UUID
    status: str
    payment_status: str
    subtotal: Decimal
    total: Decimal
    pv_points: int
    notes: Optional[str] = None
    commissions_processed_at: Optional[datetime] = None
    created_at: datetime
    items: List[OrderItemResponse] = []


class OrderListResponse(BaseModel):
    items: List[OrderResponse]
    total: int
    skip: int
    limit: int


class OrderStatsResponse(BaseModel):
    total_orders: int
    pending_orders: int
    processing_orders: int
    completed_orders: int
    cancelled_orders: int
    total_revenue: Decimal
    total_pv_points: int
