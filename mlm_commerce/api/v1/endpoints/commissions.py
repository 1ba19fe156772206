"""API endpoints for the commission ledger."""
from datetime import datetime
from typing import Optional, List, Literal
from uuid import UUID

from fastapi import APIRouter, Query

from mlm_commerce.api.deps import DB
from mlm_commerce.schemas.commission import (
    CommissionResponse,
    CommissionStatusUpdate,
    ProcessPendingRequest,
    ProcessPendingResponse,
    OrderCommissionResponse,
    CommissionStatsResponse,
    CommissionSummaryResponse,
    CommissionStructureResponse,
    ProductCommissionPreview,
)
from mlm_commerce.services.commission_service import CommissionService

router = APIRouter()


# ==================== Processing ====================

@router.post("/orders/{order_id}/process", response_model=OrderCommissionResponse)
async def process_order_commission(order_id: UUID, db: DB):
    """
    Run commission processing for an order.

    Safe to repeat: an order already processed returns no new rows.
    """
    commissions = await CommissionService(db).process_order_commission(order_id)
    return OrderCommissionResponse(
        order_id=order_id,
        created=len(commissions),
        commissions=[CommissionResponse.model_validate(c) for c in commissions],
    )


@router.post("/process-pending", response_model=ProcessPendingResponse)
async def process_pending_commissions(request: ProcessPendingRequest, db: DB):
    """Mark PENDING commissions PAID."""
    paid = await CommissionService(db).process_pending_commissions(request.commission_ids)
    return ProcessPendingResponse(requested=len(request.commission_ids), paid=paid)


# ==================== Reports ====================

@router.get("/summary", response_model=CommissionSummaryResponse)
async def get_commission_summary(
    db: DB,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    return await CommissionService(db).get_commission_summary(start_date, end_date)


@router.get("/structure", response_model=CommissionStructureResponse)
async def get_commission_structure(db: DB):
    """Level rates, role labels, product tiers and volume bonus tiers."""
    return await CommissionService(db).get_product_commission_structure()


@router.get("/product-preview", response_model=ProductCommissionPreview)
async def preview_product_commission(
    db: DB,
    product_id: UUID,
    seller_id: UUID,
    quantity: int = Query(1, ge=1),
):
    """What a seller would earn on a product sale under the product tier scheme."""
    return await CommissionService(db).calculate_product_commission(product_id, quantity, seller_id)


@router.get("/users/{user_id}", response_model=List[CommissionResponse])
async def get_user_commissions(
    user_id: UUID,
    db: DB,
    kind: Literal["earned", "generated"] = "earned",
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    return await CommissionService(db).get_user_commissions(user_id, kind, skip, limit)


@router.get("/users/{user_id}/stats", response_model=CommissionStatsResponse)
async def get_commission_stats(user_id: UUID, db: DB):
    return await CommissionService(db).get_commission_stats(user_id)


# ==================== Single commission ====================

@router.get("/{commission_id}", response_model=CommissionResponse)
async def get_commission(commission_id: UUID, db: DB):
    return await CommissionService(db).get_commission_details(commission_id)


@router.patch("/{commission_id}/status", response_model=CommissionResponse)
async def update_commission_status(commission_id: UUID, update_in: CommissionStatusUpdate, db: DB):
    """PENDING -> PAID, CANCELLED or REJECTED."""
    return await CommissionService(db).update_commission_status(commission_id, update_in.status)
