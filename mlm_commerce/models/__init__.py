from mlm_commerce.models.user import User, UserRole
from mlm_commerce.models.relationship import UserRelationship
from mlm_commerce.models.product import Product
from mlm_commerce.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from mlm_commerce.models.commission import (
    CommissionTier,
    Commission,
    CommissionType,
    CommissionStatus,
    UserPoints,
)
from mlm_commerce.models.product_commission import (
    ProductCommissionTier,
    VolumeBonusTier,
    UserRoleType,
    UserRoleAssignment,
    SellerRole,
)

__all__ = [
    # User
    "User",
    "UserRole",
    "UserRelationship",
    # Catalogue & orders
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    # Commission
    "CommissionTier",
    "Commission",
    "CommissionType",
    "CommissionStatus",
    "UserPoints",
    "ProductCommissionTier",
    "VolumeBonusTier",
    "UserRoleType",
    "UserRoleAssignment",
    "SellerRole",
]
