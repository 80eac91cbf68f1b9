"""Tests for the planner: diffing desired resources against state."""

import pytest
from topoplan.executor import Executor
from topoplan.graph.dependency_graph import build_graph
from topoplan.model.resources import UNKNOWN, ResourceSet
from topoplan.planner import Action, diff_attributes, plan, plan_destroy
from topoplan.providers import InMemoryProvider
from topoplan.state import MemoryStateStore, StateRecord


def _desired(vpc_cidr="10.0.0.0/16", subnet_cidr="10.0.1.0/24", with_subnet=True, vpc_tags=None):
    resources = ResourceSet()
    vpc = resources.define_resource("aws_vpc", "main", {"cidr_block": vpc_cidr, "tags": vpc_tags or {"Name": "main"}})
    if with_subnet:
        resources.define_resource("aws_subnet", "a", {
            "vpc_id": vpc.id,
            "cidr_block": subnet_cidr,
            "availability_zone": "us-east-1a",
        })
    return build_graph(resources)


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def provider():
    return InMemoryProvider()


def _apply(graph, store, provider):
    result = Executor(provider, store).apply(plan(graph, store))
    assert result.success
    return result


class TestPlanScenarios:
    """End-to-end planning scenarios."""

    def test_create_from_empty_state(self, store):
        """Test planning against empty state."""
        result = plan(_desired(), store)

        assert result.actions() == [("create", "aws_vpc.main"), ("create", "aws_subnet.a")]
        subnet = result.changes[1]
        assert subnet.attributes["vpc_id"] is UNKNOWN
        assert subnet.reason == "not in state"
        assert subnet.dependencies == ["aws_vpc.main"]

    def test_removed_resource_is_deleted(self, store, provider):
        """Test deleting a resource no longer configured."""
        _apply(_desired(), store, provider)

        result = plan(_desired(with_subnet=False), store)

        assert result.actions() == [("no-op", "aws_vpc.main"), ("delete", "aws_subnet.a")]
        assert result.changes[1].reason == "not in configuration"
        assert [c.address for c in result.changes if not c.is_noop] == ["aws_subnet.a"]

    def test_immutable_change_forces_replacement(self, store, provider):
        """Test replacement on an immutable change."""
        _apply(_desired(), store, provider)

        result = plan(_desired(subnet_cidr="10.0.2.0/24"), store)
        changes = [c for c in result.changes if not c.is_noop]

        assert [(c.action, c.address) for c in changes] == [
            (Action.DELETE, "aws_subnet.a"),
            (Action.CREATE, "aws_subnet.a"),
        ]
        assert all(c.replacement for c in changes)
        assert "cidr_block" in changes[0].reason
        assert result.summary()["replace"] == 1

    def test_mutable_change_is_update(self, store, provider):
        """Test in-place update on a mutable change."""
        _apply(_desired(), store, provider)

        result = plan(_desired(vpc_tags={"Name": "renamed"}), store)

        assert result.actions() == [("update", "aws_vpc.main"), ("no-op", "aws_subnet.a")]
        assert result.changes[0].changed_attributes == ["tags"]

    def test_dependent_of_updated_attribute_converges(self, store, provider):
        """A reference to an attribute changed by an update is unknown until apply."""
        def desired(tier):
            resources = ResourceSet()
            vpc = resources.define_resource("aws_vpc", "main", {"cidr_block": "10.0.0.0/16", "tags": {"Tier": tier}})
            resources.define_resource("aws_security_group", "sg", {
                "vpc_id": vpc.id,
                "description": vpc["tags"],
            })
            return build_graph(resources)

        _apply(desired("a"), store, provider)

        second = plan(desired("b"), store)
        assert second.actions() == [("update", "aws_vpc.main"), ("update", "aws_security_group.sg")]
        assert second.changes[1].attributes["description"] is UNKNOWN
        assert second.changes[1].attributes["vpc_id"] == store.get("aws_vpc.main").identifier

        result = Executor(provider, store).apply(second)
        assert result.success
        assert store.get("aws_security_group.sg").attributes["description"] == {"Tier": "b"}

        third = plan(desired("b"), store)
        assert not third.has_changes

    def test_second_plan_after_apply_is_all_noop(self, store, provider):
        """Test idempotence after apply."""
        _apply(_desired(), store, provider)

        result = plan(_desired(), store)

        assert all(c.action == Action.NO_OP for c in result.changes)
        assert not result.has_changes

    def test_replacement_cascades_to_dependents(self, store, provider):
        """A replaced VPC gets a new id, which the subnet cannot take in place."""
        _apply(_desired(), store, provider)

        result = plan(_desired(vpc_cidr="10.1.0.0/16", subnet_cidr="10.1.1.0/24"), store)

        assert result.actions() == [
            ("delete", "aws_subnet.a"),
            ("delete", "aws_vpc.main"),
            ("create", "aws_vpc.main"),
            ("create", "aws_subnet.a"),
        ]

    def test_removal_depending_on_replaced_resource_goes_first(self, store, provider):
        """Test early removal before a replacement delete."""
        _apply(_desired(), store, provider)

        result = plan(_desired(vpc_cidr="10.1.0.0/16", with_subnet=False), store)

        assert result.actions() == [
            ("delete", "aws_subnet.a"),
            ("delete", "aws_vpc.main"),
            ("create", "aws_vpc.main"),
        ]
        assert not result.changes[0].replacement
        assert result.changes[1].replacement

    def test_plan_accepts_plain_mapping(self):
        """Test planning from a plain mapping of records."""
        records = {
            "aws_vpc.main": StateRecord(
                address="aws_vpc.main",
                type="aws_vpc",
                identifier="vpc-1",
                attributes={"cidr_block": "10.0.0.0/16", "tags": {"Name": "main"}},
            ),
        }

        result = plan(_desired(), records)

        assert result.actions() == [("no-op", "aws_vpc.main"), ("create", "aws_subnet.a")]
        assert result.changes[1].attributes["vpc_id"] == "vpc-1"


class TestPlanOrdering:
    """Creates follow dependency order, deletes run in reverse."""

    @pytest.fixture
    def chain(self):
        resources = ResourceSet()
        vpc = resources.define_resource("aws_vpc", "main", {"cidr_block": "10.0.0.0/16"})
        subnet = resources.define_resource("aws_subnet", "a", {"vpc_id": vpc.id, "cidr_block": "10.0.1.0/24"})
        rt = resources.define_resource("aws_route_table", "a", {"vpc_id": vpc.id})
        resources.define_resource("aws_route_table_association", "a", {"subnet_id": subnet.id, "route_table_id": rt.id})
        return build_graph(resources)

    def test_creates_follow_dependencies(self, chain, store):
        """Test create ordering."""
        result = plan(chain, store)
        position = {c.address: i for i, c in enumerate(result.changes)}

        for dependent, dependency in chain.graph.edges:
            assert position[dependency] < position[dependent]

    def test_deletes_run_dependents_first(self, chain, store, provider):
        """Test destroy ordering."""
        _apply(chain, store, provider)

        result = plan_destroy(store)
        position = {c.address: i for i, c in enumerate(result.changes)}

        assert result.destroy
        assert all(c.action == Action.DELETE for c in result.changes)
        assert all(c.reason == "destroy requested" for c in result.changes)
        for dependent, dependency in chain.graph.edges:
            assert position[dependent] < position[dependency]

    def test_destroy_of_empty_state(self, store):
        """Test destroy with nothing in state."""
        assert plan_destroy(store).changes == []


class TestDiffAttributes:
    """Attribute comparison."""

    def test_equal(self):
        """Test identical attributes."""
        assert diff_attributes({"a": 1, "b": [1, 2]}, {"a": 1, "b": [1, 2]}) == []

    def test_added_removed_and_changed(self):
        """Test added, removed and changed attributes."""
        assert diff_attributes({"a": 1, "c": 3}, {"a": 2, "b": 2}) == ["a", "b", "c"]

    def test_unknown_always_differs(self):
        """Test that UNKNOWN never compares equal."""
        assert diff_attributes({"vpc_id": UNKNOWN}, {"vpc_id": "vpc-1"}) == ["vpc_id"]
