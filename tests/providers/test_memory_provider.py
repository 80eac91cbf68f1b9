"""Tests for the in-memory provider and provider loading."""

import pytest
from topoplan.providers import InjectedFailure, InMemoryProvider, Provider, load_provider
from topoplan.utils.errors import ConfigError


@pytest.fixture
def provider():
    return InMemoryProvider(region="eu-west-1", account_id="123456789012")


class TestInMemoryProvider:
    """Fake cloud behaviour."""

    def test_create_assigns_prefixed_ids(self, provider):
        """Test identifiers and outputs on create."""
        vpc_id, outputs = provider.create("aws_vpc", {"cidr_block": "10.0.0.0/16"})
        subnet_id, _ = provider.create("aws_subnet", {"vpc_id": vpc_id})

        assert vpc_id.startswith("vpc-")
        assert subnet_id.startswith("subnet-")
        assert vpc_id != provider.create("aws_vpc", {"cidr_block": "10.0.0.0/16"})[0]
        assert outputs["id"] == vpc_id
        assert outputs["cidr_block"] == "10.0.0.0/16"
        assert outputs["arn"] == f"arn:aws:ec2:eu-west-1:123456789012:aws_vpc/{vpc_id}"
        assert outputs["default_route_table_id"].startswith("rtb-")

    def test_eks_outputs(self, provider):
        """Test computed EKS outputs."""
        _, outputs = provider.create("aws_eks_cluster", {"name": "demo"})

        assert outputs["endpoint"].endswith(".eu-west-1.eks.amazonaws.com")
        assert outputs["oidc_issuer"].startswith("https://oidc.eks.eu-west-1.amazonaws.com/id/")
        assert outputs["certificate_authority"]

    def test_iam_arns(self, provider):
        """Test IAM ARN formats."""
        _, role = provider.create("aws_iam_role", {"name": "demo-node-role"})
        _, oidc = provider.create("aws_iam_openid_connect_provider", {"url": "https://oidc.example.com/id/ABC"})

        assert role["arn"] == "arn:aws:iam::123456789012:role/demo-node-role"
        assert oidc["arn"] == "arn:aws:iam::123456789012:oidc-provider/oidc.example.com/id/ABC"

    def test_update_keeps_computed_outputs(self, provider):
        """Test that update keeps computed outputs."""
        identifier, created = provider.create("aws_eks_cluster", {"name": "demo", "version": "1.29"})

        updated = provider.update(identifier, "aws_eks_cluster", {"name": "demo", "version": "1.30"})

        assert updated["version"] == "1.30"
        assert updated["oidc_issuer"] == created["oidc_issuer"]
        assert provider.calls[-1] == ("update", "aws_eks_cluster", identifier)

    def test_delete(self, provider):
        """Test deleting a resource."""
        identifier, _ = provider.create("aws_vpc", {})
        provider.delete(identifier, "aws_vpc")

        assert identifier not in provider.resources
        with pytest.raises(LookupError):
            provider.delete(identifier, "aws_vpc")

    def test_strict_rejects_unknown_identifiers(self, provider):
        """Test strict mode."""
        with pytest.raises(LookupError):
            provider.update("vpc-unknown", "aws_vpc", {})

    def test_lenient_adopts_unknown_identifiers(self):
        """Test lenient mode."""
        provider = InMemoryProvider(strict=False)

        outputs = provider.update("vpc-unknown", "aws_vpc", {"cidr_block": "10.0.0.0/16"})
        provider.delete("vpc-gone", "aws_vpc")

        assert outputs["id"] == "vpc-unknown"
        assert "vpc-unknown" in provider.resources

    def test_failure_injection_matches_type_and_attributes(self, provider):
        """Test matching of injected failures."""
        provider.inject_failure("create", "aws_subnet", match={"availability_zone": "us-east-1b"})

        provider.create("aws_subnet", {"availability_zone": "us-east-1a"})
        provider.create("aws_vpc", {"availability_zone": "us-east-1b"})
        with pytest.raises(InjectedFailure):
            provider.create("aws_subnet", {"availability_zone": "us-east-1b"})

    def test_custom_injected_error(self, provider):
        """Test injecting a specific exception."""
        provider.inject_failure("delete", error=PermissionError("denied"))
        identifier, _ = provider.create("aws_vpc", {})

        with pytest.raises(PermissionError):
            provider.delete(identifier, "aws_vpc")
        assert identifier in provider.resources

    def test_immutable_attributes_from_schemas(self, provider):
        """Test schema lookup through the provider."""
        assert "cidr_block" in provider.immutable_attributes("aws_subnet")


class TestLoadProvider:
    """Resolving providers by name or import path."""

    def test_builtin(self):
        """Test loading the built-in provider."""
        provider = load_provider("memory", strict=False)

        assert isinstance(provider, InMemoryProvider)
        assert provider.strict is False

    def test_dotted_path(self):
        """Test loading a provider by import path."""
        provider = load_provider("topoplan.providers.memory:InMemoryProvider", region="ap-south-1")

        assert isinstance(provider, Provider)
        assert provider.region == "ap-south-1"

    def test_unknown_name(self):
        """Test an unknown provider name."""
        with pytest.raises(ConfigError):
            load_provider("aws")

    def test_bad_module(self):
        """Test an import path whose module is missing."""
        with pytest.raises(ConfigError):
            load_provider("not_a_real_module_xyz:Thing")

    def test_missing_attribute(self):
        """Test an import path whose class is missing."""
        with pytest.raises(ConfigError):
            load_provider("topoplan.providers.memory:Nope")

    def test_not_a_provider(self):
        """Test an import path that is not a Provider."""
        with pytest.raises(ConfigError):
            load_provider("collections:OrderedDict")
