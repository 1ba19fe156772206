# tests/test_points_service.py
"""
Tests for PointsService: balances, volume bonus tiers, seller roles and
the trailing sales volume window.

Run:
    pytest tests/test_points_service.py -v
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from mlm_commerce.core.exceptions import BadRequestError
from mlm_commerce.models.order import OrderStatus
from mlm_commerce.services.points_service import PointsService


class TestPoints:

    async def test_balance_is_created_then_accumulated(self, db, network):
        service = PointsService(db)
        member = network["manager1"].id

        assert await service.get_user_points(member) == 0
        assert await service.add_user_points(member, 369) == 369
        assert await service.add_user_points(member, 31) == 400
        assert await service.get_user_points(member) == 400

    async def test_negative_points_rejected(self, db, network):
        with pytest.raises(BadRequestError):
            await PointsService(db).add_user_points(network["company"].id, -1)


class TestVolumeBonus:
    """Tier ranges are [min, max), the last tier is open ended."""

    @pytest.mark.parametrize("volume,bonus", [
        ("0", "0"),
        ("999.99", "0"),
        ("1000", "2.0"),
        ("4999.99", "2.0"),
        ("5000", "3.5"),
        ("10000", "5.0"),
        ("250000", "5.0"),
    ])
    async def test_bonus_for_volume(self, db, network, volume, bonus):
        assert await PointsService(db).get_volume_bonus(Decimal(volume)) == Decimal(bonus)

    async def test_no_tiers_no_bonus(self, db):
        assert await PointsService(db).get_volume_bonus(Decimal("50000")) == Decimal("0")


class TestSellerRoles:

    async def test_unassigned_member_is_distributor(self, db, network):
        assert await PointsService(db).get_seller_role(network["sales1"].id) == "Distributor"

    async def test_assign_and_reassign(self, db, network):
        service = PointsService(db)
        seller = network["sales1"].id

        await service.assign_seller_role(seller, "Trader")
        assert await service.get_seller_role(seller) == "Trader"

        await service.assign_seller_role(seller, "Distributor")
        assert await service.get_seller_role(seller) == "Distributor"

    async def test_unknown_role(self, db, network):
        with pytest.raises(BadRequestError) as exc:
            await PointsService(db).assign_seller_role(network["sales1"].id, "Boss")

        assert exc.value.message == "Unknown seller role: Boss"


class TestSellerVolume:

    async def test_counts_completed_orders_in_window(self, db, network, place_order):
        seller = network["sales1"]
        await place_order(seller, status=OrderStatus.COMPLETED)
        await place_order(seller, "Wild Ginseng Honey")

        assert await PointsService(db).get_seller_volume(seller.id) == Decimal("3600")

    async def test_orders_outside_window_are_ignored(self, db, network, place_order):
        seller = network["sales1"]
        old = await place_order(seller, status=OrderStatus.COMPLETED)
        old.created_at = datetime.now(timezone.utc) - timedelta(days=40)
        await db.commit()
        await place_order(seller, "Wild Ginseng Honey", status=OrderStatus.COMPLETED)

        assert await PointsService(db).get_seller_volume(seller.id) == Decimal("1000")

    async def test_as_of_moves_the_window(self, db, network, place_order):
        seller = network["sales1"]
        await place_order(seller, status=OrderStatus.COMPLETED)

        later = datetime.now(timezone.utc) + timedelta(days=31)
        assert await PointsService(db).get_seller_volume(seller.id, as_of=later) == Decimal("0")
