"""Tests for the topoplan CLI."""

import json
import pytest
import yaml
from click.testing import CliRunner
from topoplan import __version__
from topoplan.cli.main import cli
from topoplan.providers import InMemoryProvider
from topoplan.providers.registry import BUILTIN_PROVIDERS

NETWORK_VARS = ["--var", "name=demo", "--var", "availability_zones=[us-east-1a, us-east-1b]"]


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Isolated home and working directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def state_args(workdir):
    return ["--state", str(workdir / "state.json")]


class FailingSubnetProvider(InMemoryProvider):
    """Memory provider that cannot create private subnets."""

    def __init__(self, **options):
        super().__init__(**options)
        self.inject_failure("create", "aws_subnet", match={"map_public_ip_on_launch": False})


class TestInfoCommands:
    """Commands that never touch state."""

    def test_version(self, runner):
        """Test --version output."""
        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_modules_list(self, runner):
        """Test listing built-in modules."""
        result = runner.invoke(cli, ['modules'])

        assert result.exit_code == 0
        for name in ("network", "cluster", "eks"):
            assert f"{name}:" in result.output
        assert "availability_zones" in result.output

    def test_modules_json(self, runner):
        """Test JSON description of one module."""
        result = runner.invoke(cli, ['modules', 'network', '--json'])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data[0]["name"] == "network"
        inputs = {i["name"]: i for i in data[0]["inputs"]}
        assert inputs["name"]["required"] is True
        assert inputs["vpc_cidr"]["default"] == "10.0.0.0/16"

    def test_modules_unknown(self, runner):
        """Test an unknown module name."""
        result = runner.invoke(cli, ['modules', 'nope'])

        assert result.exit_code == 1
        assert "Unknown module" in result.output

    def test_validate_ok(self, runner, workdir):
        """Test validating good inputs."""
        result = runner.invoke(cli, ['validate', '-m', 'network', *NETWORK_VARS])

        assert result.exit_code == 0
        assert "is valid: 20 resources" in result.output

    def test_validate_lists_every_violation(self, runner, workdir):
        """Test that validate reports all violations at once."""
        result = runner.invoke(cli, ['validate', '-m', 'network', '--var', 'name=Bad_Name', '--var', 'vpc_cidr=nope', '--json'])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        names = {v.split(":")[0] for v in data["violations"]}
        assert {"name", "vpc_cidr", "availability_zones"} <= names

    def test_validate_with_var_file(self, runner, workdir):
        """Test inputs read from a var file."""
        (workdir / "vars.yaml").write_text(yaml.safe_dump({
            "name": "demo",
            "cluster_name": "demo-eks",
            "availability_zones": ["us-east-1a", "us-east-1b"],
        }), encoding="utf-8")

        result = runner.invoke(cli, ['validate', '-m', 'eks', '--var-file', 'vars.yaml', '--json'])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data["resources"]) == 27
        assert data["resources"][0] == "module.network.aws_vpc.main"

    def test_missing_var_file(self, runner, workdir):
        """Test error for a var file that does not exist."""
        result = runner.invoke(cli, ['validate', '-m', 'network', '--var-file', 'missing.yaml'])

        assert result.exit_code == 1
        assert "File not found" in result.output


class TestLifecycle:
    """plan, apply, output and destroy against a state file."""

    def test_plan_from_empty_state(self, runner, state_args):
        """Test JSON plan against empty state."""
        result = runner.invoke(cli, ['plan', '-m', 'network', *NETWORK_VARS, *state_args, '--json', '--quiet'])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"]["create"] == 20
        assert data["changes"][0]["address"] == "aws_vpc.main"
        assert data["changes"][1]["attributes"]["vpc_id"] == "(known after apply)"

    def test_plan_human_output(self, runner, state_args):
        """Test human-readable plan output."""
        result = runner.invoke(cli, ['plan', '-m', 'network', *NETWORK_VARS, *state_args, '--quiet'])

        assert result.exit_code == 0
        assert "+   aws_vpc.main" in result.output
        assert "Plan: 20 to add, 0 to change, 0 to destroy, 0 to replace." in result.output

    def test_apply_then_plan_is_clean(self, runner, state_args, workdir):
        """Test that plan after apply shows no changes."""
        applied = runner.invoke(cli, ['apply', '-m', 'network', *NETWORK_VARS, *state_args, '--quiet'])

        assert applied.exit_code == 0
        assert "Apply complete" in applied.output
        assert "vpc_id = " in applied.output
        state = json.loads((workdir / "state.json").read_text(encoding="utf-8"))
        assert len(state["resources"]) == 20

        planned = runner.invoke(cli, ['plan', '-m', 'network', *NETWORK_VARS, *state_args, '--quiet'])
        assert planned.exit_code == 0
        assert "No changes" in planned.output

    def test_update_across_processes(self, runner, state_args):
        """A new provider instance adopts identifiers recorded by an earlier run."""
        runner.invoke(cli, ['apply', '-m', 'network', *NETWORK_VARS, *state_args, '--quiet'])

        result = runner.invoke(cli, ['apply', '-m', 'network', *NETWORK_VARS, '--var', 'tags={Team: net}',
                                     *state_args, '--json', '--quiet'])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["summary"]["updated"] > 0

    def test_output_command(self, runner, state_args):
        """Test reading module outputs from state."""
        missing = runner.invoke(cli, ['output', '-m', 'network', *NETWORK_VARS, *state_args])
        assert missing.exit_code == 1

        runner.invoke(cli, ['apply', '-m', 'network', *NETWORK_VARS, *state_args, '--quiet'])
        result = runner.invoke(cli, ['output', '-m', 'network', *NETWORK_VARS, *state_args, '--json'])

        assert result.exit_code == 0
        outputs = json.loads(result.output)
        assert outputs["vpc_id"].startswith("vpc-")
        assert len(outputs["private_subnet_ids"]) == 2

        single = runner.invoke(cli, ['output', '-m', 'network', *NETWORK_VARS, *state_args, '--name', 'vpc_id'])
        assert single.output.startswith('vpc_id = "vpc-')

    def test_destroy(self, runner, state_args, workdir):
        """Test destroying everything in the state file."""
        runner.invoke(cli, ['apply', '-m', 'network', *NETWORK_VARS, *state_args, '--quiet'])

        result = runner.invoke(cli, ['destroy', *state_args, '--json', '--quiet'])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"]["deleted"] == 20
        state = json.loads((workdir / "state.json").read_text(encoding="utf-8"))
        assert state["resources"] == {}

    def test_failed_apply_exits_non_zero(self, runner, state_args, monkeypatch):
        """Test exit code and outcomes when a provider call fails."""
        monkeypatch.setitem(BUILTIN_PROVIDERS, "failing", FailingSubnetProvider)

        result = runner.invoke(cli, ['apply', '-m', 'network', *NETWORK_VARS, *state_args,
                                     '--provider', 'failing', '--json', '--quiet'])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["summary"]["failed"] == 2
        assert data["summary"]["blocked"] == 2
        statuses = {o["address"]: o["status"] for o in data["outcomes"]}
        assert statuses["aws_subnet.public-us-east-1a"] == "created"
        assert statuses["aws_route_table_association.private-us-east-1a"] == "blocked"

    def test_unknown_provider(self, runner, state_args):
        """Test error for an unknown provider name."""
        result = runner.invoke(cli, ['plan', '-m', 'network', *NETWORK_VARS, *state_args, '--provider', 'nope'])

        assert result.exit_code == 1
        assert "Unknown provider" in result.output

    def test_corrupt_state(self, runner, workdir):
        """Test error for an unreadable state file."""
        (workdir / "state.json").write_text("{", encoding="utf-8")

        result = runner.invoke(cli, ['plan', '-m', 'network', *NETWORK_VARS, '--state', 'state.json'])

        assert result.exit_code == 1
        assert "Invalid JSON in state file" in result.output
