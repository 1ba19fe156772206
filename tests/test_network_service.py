# tests/test_network_service.py
"""
Tests for NetworkService: downline tree and team statistics.

Run:
    pytest tests/test_network_service.py -v
"""
import uuid
from decimal import Decimal

import pytest

from mlm_commerce.core.exceptions import NotFoundError
from mlm_commerce.models.order import OrderStatus
from mlm_commerce.models.relationship import UserRelationship
from mlm_commerce.services.network_service import NetworkService


def _flatten(node):
    yield node
    for child in node["children"]:
        yield from _flatten(child)


# =============================================================================
# TEST CLASS: Network tree
# =============================================================================

class TestUserNetwork:

    async def test_company_tree(self, db, network):
        result = await NetworkService(db).get_user_network(network["company"].id)

        root = result["root_user"]
        assert root["id"] == network["company"].id
        assert root["level"] == 0
        assert result["total_members"] == 12
        assert result["total_levels"] == 4
        assert {child["email"] for child in root["children"]} == {
            "manager1@mlm-commerce.local",
            "manager2@mlm-commerce.local",
        }

    async def test_levels_are_relative_to_root(self, db, network):
        result = await NetworkService(db).get_user_network(network["leader1"].id)

        levels = {node["email"]: node["level"] for node in _flatten(result["root_user"])}
        assert levels["sales1@mlm-commerce.local"] == 1
        assert levels["user3@mlm-commerce.local"] == 2
        assert result["total_members"] == 6

    async def test_max_level_cuts_tree(self, db, network):
        result = await NetworkService(db).get_user_network(network["company"].id, max_level=2)

        assert result["total_members"] == 6
        assert result["total_levels"] == 2
        assert result["max_levels"] == 2

    async def test_zero_max_level_is_root_only(self, db, network):
        result = await NetworkService(db).get_user_network(network["company"].id, max_level=0)

        assert result["max_levels"] == 0
        assert result["total_members"] == 1
        assert result["root_user"]["children"] == []

    async def test_leaf_member(self, db, network):
        result = await NetworkService(db).get_user_network(network["user2"].id)

        assert result["root_user"]["children"] == []
        assert result["total_members"] == 1
        assert result["total_levels"] == 0

    async def test_unknown_user(self, db, network):
        with pytest.raises(NotFoundError):
            await NetworkService(db).get_user_network(uuid.uuid4())

    async def test_sales_and_commissions_per_node(self, db, network, place_order):
        await place_order(network["user1"], status=OrderStatus.COMPLETED)
        await place_order(network["user2"])

        result = await NetworkService(db).get_user_network(network["sales1"].id)

        nodes = {node["id"]: node for node in _flatten(result["root_user"])}
        assert nodes[network["sales1"].id]["commission_earned"] == Decimal("1080.00")
        assert nodes[network["user1"].id]["total_sales"] == Decimal("3600.00")
        assert nodes[network["user2"].id]["total_sales"] == Decimal("0.00")

    async def test_corrupt_cycle_does_not_loop(self, db, network):
        """A level-1 row pointing the root back into its own tree is visited once."""
        db.add(UserRelationship(
            user_id=network["company"].id,
            upline_id=network["user1"].id,
            relationship_level=1,
        ))
        await db.commit()

        result = await NetworkService(db).get_user_network(network["company"].id, max_level=10)

        ids = [node["id"] for node in _flatten(result["root_user"])]
        assert len(ids) == len(set(ids))


# =============================================================================
# TEST CLASS: Network stats
# =============================================================================

class TestNetworkStats:

    async def test_leader_breakdown(self, db, network):
        stats = await NetworkService(db).get_network_stats(network["leader1"].id)

        assert stats["total_members"] == 6
        assert [(level["level"], level["members"]) for level in stats["levels"]] == [(1, 2), (2, 3)]

    async def test_totals_count_completed_orders_only(self, db, network, place_order):
        await place_order(network["user1"], status=OrderStatus.COMPLETED)
        await place_order(network["user3"], "Wild Ginseng Honey")

        stats = await NetworkService(db).get_network_stats(network["leader1"].id)

        assert stats["total_sales"] == Decimal("3600.00")
        # leader1 360 + sales1 1080
        assert stats["total_commissions"] == Decimal("1440.00")
        assert stats["levels"][1]["total_sales"] == Decimal("3600.00")

    async def test_unknown_user(self, db, network):
        with pytest.raises(NotFoundError):
            await NetworkService(db).get_network_stats(uuid.uuid4())
