"""Tests for human-readable plan and apply output."""

import pytest
from topoplan.executor import Executor
from topoplan.graph.dependency_graph import build_graph
from topoplan.model.resources import ResourceSet
from topoplan.planner import plan, plan_destroy
from topoplan.presentation import format_apply_result, format_plan
from topoplan.providers import InMemoryProvider
from topoplan.state import MemoryStateStore


def _graph(cidr="10.0.0.0/16", tag="a"):
    resources = ResourceSet()
    vpc = resources.define_resource("aws_vpc", "main", {"cidr_block": cidr, "tags": {"Name": tag}})
    resources.define_resource("aws_subnet", "a", {"vpc_id": vpc.id, "cidr_block": "10.0.1.0/24"})
    return build_graph(resources)


@pytest.fixture
def applied():
    store = MemoryStateStore()
    provider = InMemoryProvider()
    Executor(provider, store).apply(plan(_graph(), store))
    return store, provider


class TestFormatPlan:
    """Plan rendering."""

    def test_create_plan(self):
        """Test rendering a create plan."""
        text = format_plan(plan(_graph(), MemoryStateStore()), ascii_mode=True)

        assert text.startswith("+---")
        assert "+   aws_vpc.main  [create]" in text
        assert "not in state" in text
        assert "Plan: 2 to add, 0 to change, 0 to destroy, 0 to replace." in text

    def test_no_changes(self, applied):
        """Test rendering an empty plan."""
        store, _ = applied

        text = format_plan(plan(_graph(), store), ascii_mode=True)

        assert "No changes" in text
        assert "aws_vpc.main" not in text

    def test_update_shows_attribute_diff(self, applied):
        """Test attribute diff lines."""
        store, _ = applied

        text = format_plan(plan(_graph(tag="b"), store), ascii_mode=True)

        assert "~   aws_vpc.main  [update]" in text
        assert "tags: {'Name': 'a'} -> {'Name': 'b'}" in text
        assert "aws_subnet.a" not in text
        assert "Unchanged: 1" in text

    def test_show_unchanged(self, applied):
        """Test listing no-op changes."""
        store, _ = applied

        text = format_plan(plan(_graph(tag="b"), store), ascii_mode=True, show_unchanged=True)

        assert "aws_subnet.a  [no-op]" in text

    def test_replacement(self, applied):
        """Test rendering a replacement."""
        store, _ = applied

        text = format_plan(plan(_graph(cidr="10.1.0.0/16"), store), ascii_mode=True)

        assert "-/+ aws_vpc.main  [replace (delete)]" in text
        assert "-/+ aws_vpc.main  [replace (create)]" in text
        assert "forces replacement" in text

    def test_destroy_title(self, applied):
        """Test the destroy plan title."""
        store, _ = applied

        text = format_plan(plan_destroy(store), ascii_mode=True)

        assert "TopoPlan Destroy Plan" in text
        assert "0 to add, 0 to change, 2 to destroy" in text

    def test_ascii_from_environment(self, monkeypatch):
        """Test ASCII mode from TOPOPLAN_ASCII."""
        monkeypatch.setenv("TOPOPLAN_ASCII", "1")

        assert format_plan(plan(_graph(), MemoryStateStore())).startswith("+")

    def test_unicode_by_default(self, monkeypatch):
        """Test box drawing characters by default."""
        monkeypatch.delenv("TOPOPLAN_ASCII", raising=False)

        assert format_plan(plan(_graph(), MemoryStateStore())).startswith("┌")


class TestFormatApplyResult:
    """Apply result rendering."""

    def test_success_with_outputs(self):
        """Test rendering a successful apply."""
        store = MemoryStateStore()
        result = Executor(InMemoryProvider(), store).apply(plan(_graph(), store))
        result.outputs = {"vpc_id": "vpc-123", "subnet_ids": ["subnet-1", "subnet-2"]}

        text = format_apply_result(result, ascii_mode=True)

        assert "Apply complete" in text
        assert "Created (2):" in text
        assert "  * aws_vpc.main" in text
        assert 'vpc_id = "vpc-123"' in text
        assert '  "subnet-1",' in text

    def test_failure_and_blocked(self):
        """Test rendering failed and blocked changes."""
        store = MemoryStateStore()
        provider = InMemoryProvider()
        provider.inject_failure("create", "aws_vpc", error=RuntimeError("quota exceeded"))

        result = Executor(provider, store).apply(plan(_graph(), store))
        text = format_apply_result(result, ascii_mode=True)

        assert "Apply incomplete" in text
        assert "Failed (1):" in text
        assert "quota exceeded" in text
        assert "aws_subnet.a (blocked by aws_vpc.main)" in text
