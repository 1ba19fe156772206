"""
Shared schema bases.

Response schemas are read straight from ORM rows (orders, commissions,
members). Input schemas ignore unknown keys and strip surrounding
whitespace from strings.
"""
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Response built from an ORM object.

    Usage:
        class CommissionResponse(BaseResponseSchema):
            id: UUID
            amount: Decimal
    """
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
    )


class BaseUpdateSchema(BaseCreateSchema):
    """Partial update, None leaves a field unchanged."""


OptionalUUID = Optional[UUID]
