"""Plan command - show the changes apply would make."""

import json
import sys
import click
from ... import build
from ...planner import plan as plan_changes
from ...presentation.human_formatter import format_plan
from ...utils.errors import TopoPlanError
from ...utils.logging import get_logger
from ..utils import build_context, common_options, echo_text, format_error

logger = get_logger("cli.plan")


@click.command()
@click.option('--module', '-m', 'module_name', required=True, help='Built-in module to plan (see: topoplan modules)')
@common_options
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON instead of human-readable')
@click.option('--quiet', is_flag=True, help='Suppress progress messages')
@click.option('--show-unchanged', is_flag=True, help='Also list resources without changes')
@click.pass_context
def plan(ctx, module_name, variables, var_files, state_path, provider_name, config_path, as_json, quiet, show_unchanged):
    """
    Compare a module's desired resources with state and show the plan.

    Nothing is created or changed. Exit code is 0 whether or not changes
    are pending.
    """
    try:
        context = build_context(config_path, state_path, provider_name, var_files, variables,
                                verbose=(ctx.obj or {}).get("verbose", False))

        if not quiet:
            click.echo(f"Building module '{module_name}' and dependency graph...", err=True)
        _, graph = build(module_name, context.variables, context.config)

        if not quiet:
            click.echo(f"Comparing {len(graph)} resources with state...", err=True)
        result = plan_changes(graph, context.store, schemas=context.provider.schemas)

        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        else:
            echo_text(format_plan(result, show_unchanged=show_unchanged))

    except TopoPlanError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Planning failed: {e}"), err=True)
        sys.exit(1)
