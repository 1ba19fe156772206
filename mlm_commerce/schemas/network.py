"""Pydantic schemas for downline views."""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel


class NetworkNode(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: Optional[str] = None
    role: str
    level: int
    total_sales: Decimal
    commission_earned: Decimal
    is_active: bool
    joined_at: datetime
    children: List["NetworkNode"] = []


class NetworkResponse(BaseModel):
    root_user: NetworkNode
    total_levels: int
    total_members: int
    max_levels: int


class NetworkLevelStats(BaseModel):
    level: int
    members: int
    total_sales: Decimal


class NetworkStatsResponse(BaseModel):
    total_members: int
    total_sales: Decimal
    total_commissions: Decimal
    levels: List[NetworkLevelStats]


class DownlineMember(BaseModel):
    user_id: UUID
    relationship_level: int
