"""Pydantic schemas for members and the sponsor tree."""
from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr

from mlm_commerce.models.product_commission import SellerRole
from mlm_commerce.models.user import UserRole
from mlm_commerce.schemas.base import BaseResponseSchema, BaseCreateSchema, OptionalUUID


class UserCreate(BaseCreateSchema):
    """Register a member; upline_id is the referrer."""
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: UserRole = UserRole.CUSTOMER
    upline_id: OptionalUUID = None


class UserResponse(BaseResponseSchema):
    id: UUID
    email: str
    first_name: str
    last_name: Optional[str] = None
    role: str
    is_active: bool
    upline_id: OptionalUUID = None
    created_at: datetime


class ReferralLinkResponse(BaseModel):
    user_id: UUID
    referral_link: str


class UserPointsResponse(BaseModel):
    user_id: UUID
    total_points: int


class SellerRoleUpdate(BaseCreateSchema):
    role: SellerRole


class SellerRoleResponse(BaseModel):
    user_id: UUID
    role: str


class UplineChainResponse(BaseModel):
    """Ancestor ids, index i is level i+1."""
    user_id: UUID
    max_levels: int
    chain: List[UUID]


# ==================== Relationship Schemas ====================

class RelationshipCreate(BaseCreateSchema):
    user_id: UUID
    upline_id: UUID


class RelationshipResponse(BaseResponseSchema):
    id: UUID
    user_id: UUID
    upline_id: UUID
    relationship_level: int
    created_at: datetime
