"""Validate command - check module inputs and the dependency graph."""

import json
import sys
import click
from ... import build
from ...config import collect_variables, load_config
from ...utils.errors import InvalidInputError, TopoPlanError
from ...utils.logging import get_logger, setup_logging
from ..utils import echo_text, format_error, resolve_file_path

logger = get_logger("cli.validate")


@click.command()
@click.option('--module', '-m', 'module_name', required=True, help='Built-in module to validate')
@click.option('--var', 'variables', multiple=True, metavar='NAME=VALUE', help='Set a module input (value parsed as YAML)')
@click.option('--var-file', 'var_files', multiple=True, type=click.Path(), help='YAML or JSON file of module inputs')
@click.option('--config', 'config_path', type=click.Path(), help='Extra config file merged last')
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON')
@click.pass_context
def validate(ctx, module_name, variables, var_files, config_path, as_json):
    """Validate inputs and build the graph without touching state or providers."""
    try:
        config = load_config(config_path)
        setup_logging("DEBUG" if (ctx.obj or {}).get("verbose") else config["logging"]["level"])
        try:
            files = [str(resolve_file_path(f)) for f in var_files]
        except FileNotFoundError as e:
            click.echo(format_error(str(e)), err=True)
            sys.exit(1)

        instance, graph = build(module_name, collect_variables(files, variables), config)
        order = graph.topological_order()

        if as_json:
            click.echo(json.dumps({
                "valid": True,
                "module": module_name,
                "resources": order,
                "edges": graph.graph.number_of_edges(),
                "outputs": sorted(instance.outputs),
            }, indent=2))
        else:
            echo_text(
                f"Module '{module_name}' is valid: {len(order)} resources, "
                f"{graph.graph.number_of_edges()} dependencies, {len(instance.outputs)} outputs."
            )

    except InvalidInputError as e:
        if as_json:
            click.echo(json.dumps({"valid": False, "module": module_name, "violations": e.violations}, indent=2))
        else:
            click.echo(format_error(f"Invalid inputs for module '{module_name}':"), err=True)
            for violation in e.violations:
                click.echo(f"  - {violation}", err=True)
        sys.exit(1)
    except TopoPlanError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Validation failed: {e}"), err=True)
        sys.exit(1)
