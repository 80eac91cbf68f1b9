"""Tests for the library entry points."""

import threading
import pytest
import topoplan
from topoplan.executor import OutcomeStatus
from topoplan.providers import InMemoryProvider
from topoplan.state import MemoryStateStore, StateRecord
from topoplan.utils.errors import InvalidInputError, TopoPlanError


@pytest.fixture
def config():
    return {
        "project": "atlas",
        "state": {"path": "unused.json"},
        "executor": {"max_workers": 4},
        "provider": {"name": "memory", "options": {}},
        "tags": {"default": {"ManagedBy": "topoplan"}},
        "logging": {"level": "WARNING"},
    }


@pytest.fixture
def network_inputs():
    return {"name": "demo", "availability_zones": ["us-east-1a", "us-east-1b"], "single_nat_gateway": True}


class TestBuild:
    """Module instantiation and graph construction."""

    def test_build_applies_default_and_project_tags(self, config, network_inputs):
        """Test that build merges default and project tags into resources."""
        instance, graph = topoplan.build("network", network_inputs, config)

        tags = graph.get_resource("aws_vpc.main").attributes["tags"]
        assert tags["ManagedBy"] == "topoplan"
        assert tags["Project"] == "atlas"
        assert tags["Name"] == "demo-vpc"
        assert len(graph) == 18
        assert "vpc_id" in instance.outputs

    def test_invalid_inputs_raise_before_planning(self, config):
        """Test that bad inputs fail before state is read."""
        with pytest.raises(InvalidInputError):
            topoplan.plan("network", {"name": "demo"}, MemoryStateStore(), config)


class TestLifecycle:
    """plan, apply and destroy through the facade."""

    def test_apply_returns_outputs_and_is_idempotent(self, config, network_inputs):
        """Test apply outputs and a clean follow-up plan."""
        store = MemoryStateStore()
        provider = InMemoryProvider()

        result = topoplan.apply("network", network_inputs, store, provider, config=config)

        assert result.success
        assert result.outputs["vpc_id"] == store.get("aws_vpc.main").identifier
        assert len(result.outputs["nat_gateway_ids"]) == 1
        assert not topoplan.plan("network", network_inputs, store, config).has_changes

    def test_destroy_everything(self, config, network_inputs):
        """Test destroying every resource in state."""
        store = MemoryStateStore()
        provider = InMemoryProvider()
        topoplan.apply("network", network_inputs, store, provider, config=config)

        result = topoplan.destroy(store, provider, config=config)

        assert result.success
        assert store.load() == {}
        assert provider.resources == {}

    def test_destroy_single_module(self, config, network_inputs):
        """Test that a module-scoped destroy leaves other records alone."""
        store = MemoryStateStore()
        provider = InMemoryProvider()
        topoplan.apply("network", network_inputs, store, provider, config=config)
        sg_id, _ = provider.create("aws_security_group", {"name": "legacy"})
        store.save("aws_security_group.legacy", StateRecord(
            address="aws_security_group.legacy",
            type="aws_security_group",
            identifier=sg_id,
            attributes={"name": "legacy"},
        ))

        result = topoplan.destroy(store, provider, config=config, module_name="network", inputs=network_inputs)

        assert result.success
        assert len(result.outcomes) == 18
        assert list(store.load()) == ["aws_security_group.legacy"]
        assert sg_id in provider.resources

    def test_canceled_apply(self, config, network_inputs):
        """Test apply with cancellation already requested."""
        cancel = threading.Event()
        cancel.set()

        result = topoplan.apply("network", network_inputs, MemoryStateStore(), InMemoryProvider(),
                                config=config, cancel_event=cancel)

        assert result.canceled
        assert result.status_of("aws_vpc.main") == OutcomeStatus.CANCELED
        assert result.outputs == {}

    def test_unexpected_errors_are_wrapped(self, config, network_inputs):
        """Test that non-topoplan errors surface as TopoPlanError."""
        class ExplodingStore(MemoryStateStore):
            def load(self):
                raise RuntimeError("disk on fire")

        with pytest.raises(TopoPlanError) as exc_info:
            topoplan.plan("network", network_inputs, ExplodingStore(), config)

        assert "disk on fire" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
