"""API endpoints for orders."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from mlm_commerce.api.deps import DB
from mlm_commerce.models.order import OrderStatus, PaymentStatus
from mlm_commerce.schemas.order import (
    OrderCreate,
    OrderUpdate,
    OrderResponse,
    OrderListResponse,
    OrderStatsResponse,
)
from mlm_commerce.services.order_service import OrderService

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(order_in: OrderCreate, db: DB):
    """Create an order. COMPLETED or PAID orders pay commissions straight away."""
    return await OrderService(db).create_order(
        user_id=order_in.user_id,
        items=[item.model_dump() for item in order_in.items],
        status=order_in.status,
        payment_status=order_in.payment_status,
        notes=order_in.notes,
    )


@router.get("", response_model=OrderListResponse)
async def list_orders(
    db: DB,
    user_id: Optional[UUID] = None,
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
):
    orders, total = await OrderService(db).get_orders(
        user_id=user_id,
        status=order_status,
        payment_status=payment_status,
        skip=skip,
        limit=limit,
    )
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/stats", response_model=OrderStatsResponse)
async def get_order_stats(db: DB, user_id: Optional[UUID] = None):
    return await OrderService(db).get_order_stats(user_id)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID, db: DB):
    return await OrderService(db).get_order_by_id(order_id)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(order_id: UUID, order_in: OrderUpdate, db: DB):
    """Update status; COMPLETED or PAID triggers commission processing."""
    return await OrderService(db).update_order(
        order_id,
        status=order_in.status,
        payment_status=order_in.payment_status,
        notes=order_in.notes,
    )


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: UUID, db: DB):
    """Cancel a PENDING order."""
    return await OrderService(db).cancel_order(order_id)
