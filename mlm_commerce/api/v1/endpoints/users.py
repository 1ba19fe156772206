"""API endpoints for members and their place in the sponsor tree."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from mlm_commerce.api.deps import DB
from mlm_commerce.config import settings
from mlm_commerce.schemas.network import DownlineMember
from mlm_commerce.schemas.user import (
    UserCreate,
    UserResponse,
    ReferralLinkResponse,
    UserPointsResponse,
    UplineChainResponse,
    SellerRoleUpdate,
    SellerRoleResponse,
)
from mlm_commerce.services.points_service import PointsService
from mlm_commerce.services.relationship_service import RelationshipService
from mlm_commerce.services.user_service import UserService

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(user_in: UserCreate, db: DB):
    """Register a member, optionally under a referrer."""
    service = UserService(db)
    return await service.create_user(
        email=user_in.email,
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        role=user_in.role,
        upline_id=user_in.upline_id,
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: UUID, db: DB):
    return await UserService(db).get_user(user_id)


@router.get("/{user_id}/referral-link", response_model=ReferralLinkResponse)
async def get_referral_link(user_id: UUID, db: DB):
    link = await UserService(db).get_referral_link(user_id)
    return ReferralLinkResponse(user_id=user_id, referral_link=link)


@router.get("/{user_id}/points", response_model=UserPointsResponse)
async def get_user_points(user_id: UUID, db: DB):
    await UserService(db).get_user(user_id)
    points = await PointsService(db).get_user_points(user_id)
    return UserPointsResponse(user_id=user_id, total_points=points)


@router.put("/{user_id}/seller-role", response_model=SellerRoleResponse)
async def set_seller_role(user_id: UUID, role_in: SellerRoleUpdate, db: DB):
    """Sell as Distributor or Trader under the product tier scheme."""
    await UserService(db).get_user(user_id)
    points_service = PointsService(db)
    await points_service.assign_seller_role(user_id, role_in.role.value)
    return SellerRoleResponse(user_id=user_id, role=await points_service.get_seller_role(user_id))


@router.get("/{user_id}/upline-chain", response_model=UplineChainResponse)
async def get_upline_chain(
    user_id: UUID,
    db: DB,
    max_levels: int = Query(settings.COMMISSION_MAX_LEVELS, ge=1, le=50),
):
    """Sponsor chain, nearest first."""
    await UserService(db).get_user(user_id)
    chain = await RelationshipService(db).get_upline_chain(user_id, max_levels)
    return UplineChainResponse(user_id=user_id, max_levels=max_levels, chain=chain)


@router.get("/{user_id}/downlines", response_model=List[DownlineMember])
async def get_downlines(
    user_id: UUID,
    db: DB,
    max_level: Optional[int] = Query(None, ge=1),
):
    """Every member below user_id with their distance."""
    await UserService(db).get_user(user_id)
    rows = await RelationshipService(db).get_downlines(user_id, max_level)
    return [
        DownlineMember(user_id=row.user_id, relationship_level=row.relationship_level)
        for row in rows
    ]
