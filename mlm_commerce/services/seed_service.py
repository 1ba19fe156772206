"""
Default data.

Each initializer inserts its rows only when the target table is empty, so
they are safe to run on every startup.
"""
import logging
from decimal import Decimal
from typing import Dict

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.models.commission import CommissionTier
from mlm_commerce.models.product import Product
from mlm_commerce.models.product_commission import (
    ProductCommissionTier,
    VolumeBonusTier,
    UserRoleType,
    SellerRole,
)
from mlm_commerce.models.user import User, UserRole
from mlm_commerce.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)


COMMISSION_TIERS = [
    # (tier_level, name, direct rate, indirect rate, points rate %)
    (1, "Direct Sales", Decimal("0.30"), Decimal("0.00"), Decimal("0")),
    (2, "Indirect Sales", Decimal("0.00"), Decimal("0.10"), Decimal("0")),
    (3, "Level 3", Decimal("0.00"), Decimal("0.05"), Decimal("10")),
    (4, "Level 4", Decimal("0.00"), Decimal("0.05"), Decimal("5")),
]

VOLUME_BONUS_TIERS = [
    # (min_volume, max_volume, bonus %)
    (Decimal("0"), Decimal("1000"), Decimal("0.0")),
    (Decimal("1000"), Decimal("5000"), Decimal("2.0")),
    (Decimal("5000"), Decimal("10000"), Decimal("3.5")),
    (Decimal("10000"), None, Decimal("5.0")),
]

SELLER_ROLES = [
    (SellerRole.DISTRIBUTOR.value, Decimal("1.0")),
    (SellerRole.TRADER.value, Decimal("1.2")),
]

PRODUCTS = [
    # (name, price, pv_value, description)
    ("Real Man", Decimal("3600.00"), 600, "Men's health supplement"),
    ("Wild Ginseng Honey", Decimal("1000.00"), 700, "Wild ginseng honey, 500g"),
    ("Golden Ginseng Water", Decimal("18.90"), 2000, "Ginseng infused water"),
    ("Travel Yunnan", Decimal("799.00"), 500, "Yunnan travel package"),
    ("Travel Bangkok", Decimal("799.00"), 500, "Bangkok travel package"),
]

PRODUCT_TIERS = {
    # name: (retail, trader, distributor, trader min/max %, distributor min/max %)
    "Golden Ginseng Water": (
        Decimal("18.70"), Decimal("14.00"), Decimal("11.00"),
        Decimal("10"), Decimal("15"), Decimal("8"), Decimal("12"),
    ),
    "Wild Ginseng Honey": (
        Decimal("997.00"), Decimal("747.00"), Decimal("587.00"),
        Decimal("12"), Decimal("18"), Decimal("10"), Decimal("15"),
    ),
    "Real Man": (
        Decimal("3697.00"), Decimal("2678.00"), Decimal("2097.00"),
        Decimal("15"), Decimal("20"), Decimal("12"), Decimal("17"),
    ),
}

# (key, email, first name, role, sponsor key)
DEMO_NETWORK = [
    ("company", "company@mlm-commerce.local", "Company", UserRole.COMPANY, None),
    ("manager1", "manager1@mlm-commerce.local", "Manager One", UserRole.MANAGER, "company"),
    ("manager2", "manager2@mlm-commerce.local", "Manager Two", UserRole.MANAGER, "company"),
    ("leader1", "leader1@mlm-commerce.local", "Leader One", UserRole.LEADER, "manager1"),
    ("leader2", "leader2@mlm-commerce.local", "Leader Two", UserRole.LEADER, "manager1"),
    ("leader3", "leader3@mlm-commerce.local", "Leader Three", UserRole.LEADER, "manager2"),
    ("sales1", "sales1@mlm-commerce.local", "Sales One", UserRole.SALES, "leader1"),
    ("sales2", "sales2@mlm-commerce.local", "Sales Two", UserRole.SALES, "leader1"),
    ("sales3", "sales3@mlm-commerce.local", "Sales Three", UserRole.SALES, "leader2"),
    ("user1", "user1@mlm-commerce.local", "User One", UserRole.CUSTOMER, "sales1"),
    ("user2", "user2@mlm-commerce.local", "User Two", UserRole.CUSTOMER, "sales1"),
    ("user3", "user3@mlm-commerce.local", "User Three", UserRole.CUSTOMER, "sales2"),
]


class SeedService:
    """Initialize-once default rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _is_empty(self, model) -> bool:
        count = (await self.db.execute(select(func.count()).select_from(model))).scalar() or 0
        return count == 0

    async def initialize_commission_tables(self) -> bool:
        """Seed the level rate table. Returns True when rows were inserted."""
        if not await self._is_empty(CommissionTier):
            return False

        for level, name, direct, indirect, points in COMMISSION_TIERS:
            self.db.add(CommissionTier(
                tier_level=level,
                name=name,
                direct_commission_rate=direct,
                indirect_commission_rate=indirect,
                points_rate=points,
            ))
        await self.db.commit()
        logger.info(f"Seeded {len(COMMISSION_TIERS)} commission tiers")
        return True

    async def initialize_products(self) -> bool:
        if not await self._is_empty(Product):
            return False

        for name, price, pv_value, description in PRODUCTS:
            self.db.add(Product(
                name=name,
                price=price,
                pv_value=pv_value,
                description=description,
                stock=1000,
            ))
        await self.db.commit()
        logger.info(f"Seeded {len(PRODUCTS)} products")
        return True

    async def initialize_product_commission_tables(self) -> bool:
        """Seed seller roles, volume bonus tiers and per-product tiers."""
        inserted = False

        if await self._is_empty(UserRoleType):
            for name, multiplier in SELLER_ROLES:
                self.db.add(UserRoleType(name=name, commission_multiplier=multiplier))
            inserted = True

        if await self._is_empty(VolumeBonusTier):
            for min_volume, max_volume, bonus in VOLUME_BONUS_TIERS:
                self.db.add(VolumeBonusTier(
                    min_volume=min_volume,
                    max_volume=max_volume,
                    bonus_percentage=bonus,
                ))
            inserted = True

        if await self._is_empty(ProductCommissionTier):
            result = await self.db.execute(
                select(Product).where(Product.name.in_(list(PRODUCT_TIERS)))
            )
            for product in result.scalars().all():
                retail, trader, distributor, t_min, t_max, d_min, d_max = PRODUCT_TIERS[product.name]
                self.db.add(ProductCommissionTier(
                    product_id=product.id,
                    retail_price=retail,
                    trader_price=trader,
                    distributor_price=distributor,
                    trader_commission_min=t_min,
                    trader_commission_max=t_max,
                    distributor_commission_min=d_min,
                    distributor_commission_max=d_max,
                ))
                inserted = True

        if inserted:
            await self.db.commit()
            logger.info("Seeded product commission tables")
        return inserted

    async def seed_demo_network(self) -> Dict[str, User]:
        """
        Build the demo sponsor tree. Returns users by key; existing users
        are left untouched when the users table is not empty.
        """
        if not await self._is_empty(User):
            result = await self.db.execute(
                select(User).where(User.email.in_([email for _, email, *_ in DEMO_NETWORK]))
            )
            by_email = {user.email: user for user in result.scalars().all()}
            return {key: by_email[email] for key, email, *_ in DEMO_NETWORK if email in by_email}

        users: Dict[str, User] = {}
        for key, email, first_name, role, _ in DEMO_NETWORK:
            users[key] = User(email=email, first_name=first_name, role=role.value)
            self.db.add(users[key])
        await self.db.commit()

        relationship_service = RelationshipService(self.db)
        for key, _, _, _, sponsor in DEMO_NETWORK:
            if sponsor:
                await relationship_service.create_user_relationship(users[key].id, users[sponsor].id)

        logger.info(f"Seeded demo network with {len(users)} members")
        return users

    async def seed_all(self, with_demo_network: bool = True) -> None:
        await self.initialize_commission_tables()
        await self.initialize_products()
        await self.initialize_product_commission_tables()
        if with_demo_network:
            await self.seed_demo_network()
