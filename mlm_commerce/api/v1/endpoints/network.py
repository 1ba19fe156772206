"""API endpoints for downline views."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from mlm_commerce.api.deps import DB
from mlm_commerce.schemas.network import NetworkResponse, NetworkStatsResponse
from mlm_commerce.services.network_service import NetworkService

router = APIRouter()


@router.get("/{user_id}", response_model=NetworkResponse)
async def get_user_network(
    user_id: UUID,
    db: DB,
    max_level: Optional[int] = Query(None, ge=1, le=10),
):
    """Nested downline tree."""
    return await NetworkService(db).get_user_network(user_id, max_level)


@router.get("/{user_id}/stats", response_model=NetworkStatsResponse)
async def get_network_stats(user_id: UUID, db: DB):
    """Team size, completed sales and commissions."""
    return await NetworkService(db).get_network_stats(user_id)
