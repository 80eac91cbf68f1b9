"""Destroy command - delete resources recorded in state."""

import json
import sys
import click
from ... import destroy as destroy_resources
from ...presentation.human_formatter import format_apply_result
from ...utils.errors import TopoPlanError
from ...utils.logging import get_logger
from ..utils import build_context, common_options, echo_text, format_error

logger = get_logger("cli.destroy")


@click.command()
@click.option('--module', '-m', 'module_name', help='Only destroy resources of this module (needs its inputs)')
@common_options
@click.option('--max-workers', type=click.IntRange(min=1), help='Concurrent provider calls (overrides executor.max_workers)')
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON instead of human-readable')
@click.option('--quiet', is_flag=True, help='Suppress progress messages')
@click.pass_context
def destroy(ctx, module_name, variables, var_files, state_path, provider_name, config_path, max_workers, as_json, quiet):
    """Delete resources in state, dependents before their dependencies."""
    try:
        context = build_context(config_path, state_path, provider_name, var_files, variables,
                                verbose=(ctx.obj or {}).get("verbose", False))
        workers = max_workers or context.max_workers

        if not quiet:
            scope = f"module '{module_name}'" if module_name else "all resources in state"
            click.echo(f"Destroying {scope}...", err=True)
        result = destroy_resources(context.store, context.provider, config=context.config, max_workers=workers,
                                   module_name=module_name, inputs=context.variables)

        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        else:
            echo_text(format_apply_result(result))

        if not result.success:
            sys.exit(result.exit_code)

    except TopoPlanError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Destroy failed: {e}"), err=True)
        sys.exit(1)
