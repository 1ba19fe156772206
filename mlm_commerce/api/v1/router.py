from fastapi import APIRouter

from mlm_commerce.api.v1.endpoints import (
    users,
    relationships,
    network,
    commissions,
    orders,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(relationships.router, prefix="/relationships", tags=["Relationships"])
api_router.include_router(network.router, prefix="/network", tags=["Network"])
api_router.include_router(commissions.router, prefix="/commissions", tags=["Commissions"])
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])
