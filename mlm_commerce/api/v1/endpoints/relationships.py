"""API endpoints for sponsor assignment."""
from fastapi import APIRouter, status

from mlm_commerce.api.deps import DB
from mlm_commerce.schemas.user import RelationshipCreate, RelationshipResponse
from mlm_commerce.services.relationship_service import RelationshipService

router = APIRouter()


@router.post("", response_model=RelationshipResponse, status_code=status.HTTP_201_CREATED)
async def create_relationship(relationship_in: RelationshipCreate, db: DB):
    """
    Attach a member under a sponsor.

    400 for self reference, duplicates, an existing sponsor or a cycle.
    """
    service = RelationshipService(db)
    return await service.create_user_relationship(
        relationship_in.user_id,
        relationship_in.upline_id,
    )
