# tests/test_commission_service.py
"""
Tests for CommissionService.

Covers:
- Order-total commissions through the order trigger
- Idempotent reprocessing
- Product tier commissions and points
- Status transitions and batch payout
- Member and company reporting

Run:
    pytest tests/test_commission_service.py -v
"""
import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select, func

from mlm_commerce.core.exceptions import NotFoundError, BadRequestError, InternalServiceError
from mlm_commerce.models.commission import Commission, CommissionStatus, CommissionType
from mlm_commerce.models.order import OrderStatus
from mlm_commerce.models.user import UserRole
from mlm_commerce.services.commission_policy import CommissionPolicy, ProductTierPolicy
from mlm_commerce.services.commission_service import CommissionService
from mlm_commerce.services.points_service import PointsService
from mlm_commerce.services.user_service import UserService


async def _commission_count(db, **filters):
    stmt = select(func.count(Commission.id)).filter_by(**filters)
    return (await db.execute(stmt)).scalar()


@pytest_asyncio.fixture
async def small_network(db, products):
    """manager <- leader <- sales <- buyer, outside the demo tree."""
    users = UserService(db)
    manager = await users.create_user("manager@example.com", "Manager", role=UserRole.MANAGER)
    leader = await users.create_user("leader@example.com", "Leader", role=UserRole.LEADER, upline_id=manager.id)
    sales = await users.create_user("sales@example.com", "Sales", role=UserRole.SALES, upline_id=leader.id)
    buyer = await users.create_user("buyer@example.com", "Buyer", upline_id=sales.id)
    return {"manager": manager, "leader": leader, "sales": sales, "buyer": buyer}


# =============================================================================
# TEST CLASS: Order total scheme
# =============================================================================

class TestOrderTotalCommissions:
    """30 / 10 / 5 / 5 of the order total up the sponsor chain."""

    async def test_three_level_chain(self, db, small_network, place_order):
        """
        TEST: buyer with three uplines completes a 3600 order.

        Verify:
        - exactly three PENDING rows
        - 1080 / 360 / 180 at levels 1 / 2 / 3
        - DIRECT for the sponsor, INDIRECT above
        """
        order = await place_order(small_network["buyer"], status=OrderStatus.COMPLETED)

        result = await db.execute(
            select(Commission)
            .where(Commission.order_id == order.id)
            .order_by(Commission.relationship_level)
        )
        rows = result.scalars().all()

        assert [row.recipient_id for row in rows] == [
            small_network["sales"].id,
            small_network["leader"].id,
            small_network["manager"].id,
        ]
        assert [row.amount for row in rows] == [Decimal("1080.00"), Decimal("360.00"), Decimal("180.00")]
        assert [row.relationship_level for row in rows] == [1, 2, 3]
        assert [row.type for row in rows] == [
            CommissionType.DIRECT.value,
            CommissionType.INDIRECT.value,
            CommissionType.INDIRECT.value,
        ]
        assert all(row.status == CommissionStatus.PENDING.value for row in rows)
        assert all(row.user_id == small_network["buyer"].id for row in rows)

    async def test_four_level_chain_reaches_company(self, db, network, place_order):
        order = await place_order(network["user1"], status=OrderStatus.COMPLETED)

        result = await db.execute(select(Commission).where(Commission.order_id == order.id))
        by_recipient = {row.recipient_id: row.amount for row in result.scalars().all()}

        assert by_recipient == {
            network["sales1"].id: Decimal("1080.00"),
            network["leader1"].id: Decimal("360.00"),
            network["manager1"].id: Decimal("180.00"),
            network["company"].id: Decimal("180.00"),
        }

    async def test_buyer_without_upline_pays_nothing(self, db, network, place_order):
        order = await place_order(network["company"])

        commissions = await CommissionService(db).process_order_commission(order.id)

        assert commissions == []
        assert await _commission_count(db) == 0

    async def test_second_run_is_a_no_op(self, db, network, place_order):
        order = await place_order(network["user1"])
        service = CommissionService(db)

        first = await service.process_order_commission(order.id)
        second = await service.process_order_commission(order.id)

        assert len(first) == 4
        assert second == []
        assert await _commission_count(db, order_id=order.id) == 4
        assert order.commissions_processed_at is not None

    async def test_unknown_order(self, db, network):
        with pytest.raises(NotFoundError) as exc:
            await CommissionService(db).process_order_commission(uuid.uuid4())

        assert exc.value.message == "Order not found"

    async def test_policy_failure_leaves_order_unclaimed(self, db, network, place_order):
        """
        TEST: an unexpected error during calculation.

        Verify: InternalServiceError, no rows written, order can be retried.
        """
        class BrokenPolicy(CommissionPolicy):
            name = "BROKEN"

            async def calculate(self, db, order, chain, rate_table):
                raise RuntimeError("rate lookup exploded")

        order = await place_order(network["user1"])

        with pytest.raises(InternalServiceError) as exc:
            await CommissionService(db, policy=BrokenPolicy()).process_order_commission(order.id)

        assert exc.value.message == "Failed to process commission"
        await db.refresh(order)
        assert order.commissions_processed_at is None
        assert await _commission_count(db) == 0

        retried = await CommissionService(db).process_order_commission(order.id)
        assert len(retried) == 4


# =============================================================================
# TEST CLASS: Product tier scheme
# =============================================================================

class TestProductTierCommissions:
    """Seller rate on retail price, level 2 rate, points beyond."""

    async def test_real_man_sold_by_distributor(self, db, network, place_order):
        """
        TEST: user1 buys one Real Man (retail 3697), sales1 has no volume.

        Verify:
        - sales1 earns the distributor minimum 12% = 443.64
        - leader1 earns 10% = 369.70
        - manager1 and company receive points, not currency
        """
        order = await place_order(network["user1"])

        commissions = await CommissionService(db, policy=ProductTierPolicy()).process_order_commission(order.id)

        by_recipient = {row.recipient_id: row for row in commissions}
        assert set(by_recipient) == {network["sales1"].id, network["leader1"].id}
        assert by_recipient[network["sales1"].id].amount == Decimal("443.64")
        assert by_recipient[network["sales1"].id].commission_rate == Decimal("0.1200")
        assert by_recipient[network["leader1"].id].amount == Decimal("369.70")

        points = PointsService(db)
        assert await points.get_user_points(network["manager1"].id) == 369
        assert await points.get_user_points(network["company"].id) == 184
        assert await points.get_user_points(network["sales1"].id) == 0

    async def test_trader_with_volume_bonus(self, db, network, place_order):
        """
        TEST: sales1 is a Trader with 3600 of completed sales this window.

        Verify: bonus tier 1000-5000 adds 2 points to the 15% minimum.
        """
        await PointsService(db).assign_seller_role(network["sales1"].id, "Trader")
        await place_order(network["sales1"], status=OrderStatus.COMPLETED)
        order = await place_order(network["user1"])

        commissions = await CommissionService(db, policy=ProductTierPolicy()).process_order_commission(order.id)

        seller_row = next(row for row in commissions if row.recipient_id == network["sales1"].id)
        assert seller_row.amount == Decimal("628.49")
        assert seller_row.commission_rate == Decimal("0.1700")

    async def test_product_without_tier_pays_nothing(self, db, network, place_order):
        order = await place_order(network["user1"], "Travel Bangkok")

        commissions = await CommissionService(db, policy=ProductTierPolicy()).process_order_commission(order.id)

        assert commissions == []
        assert await PointsService(db).get_user_points(network["manager1"].id) == 0

    async def test_preview(self, db, network, products):
        preview = await CommissionService(db).calculate_product_commission(
            products["Golden Ginseng Water"].id, 10, network["sales2"].id
        )

        assert preview["seller_role"] == "Distributor"
        assert preview["commission_rate"] == Decimal("8")
        assert preview["commission_amount"] == Decimal("14.96")

    async def test_preview_validation(self, db, network, products):
        service = CommissionService(db)

        with pytest.raises(BadRequestError):
            await service.calculate_product_commission(products["Real Man"].id, 0, network["sales1"].id)
        with pytest.raises(NotFoundError):
            await service.calculate_product_commission(products["Real Man"].id, 1, uuid.uuid4())

    async def test_structure(self, db, network):
        structure = await CommissionService(db).get_product_commission_structure()

        assert [role["name"] for role in structure["role_types"]] == ["Sales", "Leader", "Manager"]
        assert structure["level_rates"][1] == Decimal("0.30")
        assert {role["name"] for role in structure["seller_roles"]} == {"Distributor", "Trader"}
        assert len(structure["product_tiers"]) == 3
        assert structure["volume_bonus_tiers"][-1]["max_volume"] is None


# =============================================================================
# TEST CLASS: Status and payout
# =============================================================================

class TestCommissionStatus:

    @pytest_asyncio.fixture
    async def commissions(self, db, network, place_order):
        order = await place_order(network["user1"])
        return await CommissionService(db).process_order_commission(order.id)

    async def test_pending_to_paid(self, db, commissions):
        commission = await CommissionService(db).update_commission_status(
            commissions[0].id, CommissionStatus.PAID
        )

        assert commission.status == CommissionStatus.PAID.value
        assert commission.paid_at is not None

    async def test_only_pending_can_move(self, db, commissions):
        service = CommissionService(db)
        await service.update_commission_status(commissions[0].id, CommissionStatus.CANCELLED)

        with pytest.raises(BadRequestError) as exc:
            await service.update_commission_status(commissions[0].id, CommissionStatus.PAID)

        assert exc.value.message == "Invalid status transition"

    async def test_unknown_commission(self, db, commissions):
        with pytest.raises(NotFoundError):
            await CommissionService(db).get_commission_details(uuid.uuid4())

    async def test_batch_payout_skips_non_pending(self, db, commissions):
        service = CommissionService(db)
        await service.update_commission_status(commissions[0].id, CommissionStatus.REJECTED)

        paid = await service.process_pending_commissions([row.id for row in commissions])

        assert paid == 3
        assert await _commission_count(db, status=CommissionStatus.PAID.value) == 3
        assert await _commission_count(db, status=CommissionStatus.REJECTED.value) == 1

    async def test_batch_payout_needs_ids(self, db, commissions):
        with pytest.raises(BadRequestError):
            await CommissionService(db).process_pending_commissions([])


# =============================================================================
# TEST CLASS: Reporting
# =============================================================================

class TestCommissionReporting:

    @pytest_asyncio.fixture
    async def completed_order(self, db, network, place_order):
        return await place_order(network["user1"], status=OrderStatus.COMPLETED)

    async def test_earned_and_generated(self, db, network, completed_order):
        service = CommissionService(db)

        earned = await service.get_user_commissions(network["sales1"].id, kind="earned")
        generated = await service.get_user_commissions(network["user1"].id, kind="generated")

        assert [row.amount for row in earned] == [Decimal("1080.00")]
        assert len(generated) == 4
        assert await service.get_user_commissions(network["user1"].id, kind="earned") == []

    async def test_user_commissions_validation(self, db, network, completed_order):
        service = CommissionService(db)

        with pytest.raises(BadRequestError):
            await service.get_user_commissions(network["sales1"].id, kind="everything")
        with pytest.raises(NotFoundError):
            await service.get_user_commissions(uuid.uuid4())

    async def test_stats(self, db, network, completed_order):
        service = CommissionService(db)
        earned = await service.get_user_commissions(network["sales1"].id)
        await service.update_commission_status(earned[0].id, CommissionStatus.PAID)

        stats = await service.get_commission_stats(network["sales1"].id)

        assert stats["total_earned"] == Decimal("1080.00")
        assert stats["total_paid"] == Decimal("1080.00")
        assert stats["total_pending"] == Decimal("0.00")
        assert stats["this_month"] == Decimal("1080.00")
        assert stats["last_month"] == Decimal("0.00")

    async def test_summary(self, db, network, completed_order):
        summary = await CommissionService(db).get_commission_summary()

        assert summary["total_commissions"] == 4
        assert summary["total_pending"] == Decimal("1800.00")
        assert summary["total_paid"] == Decimal("0.00")
        top = summary["top_earners"][0]
        assert top["recipient_id"] == network["sales1"].id
        assert top["total_earned"] == Decimal("1080.00")
