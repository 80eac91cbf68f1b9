"""Apply command - plan and execute a module against the provider."""

import json
import sys
import click
from ... import apply as apply_module
from ...presentation.human_formatter import format_apply_result
from ...utils.errors import TopoPlanError
from ...utils.logging import get_logger
from ..utils import build_context, common_options, echo_text, format_error

logger = get_logger("cli.apply")


@click.command()
@click.option('--module', '-m', 'module_name', required=True, help='Built-in module to apply (see: topoplan modules)')
@common_options
@click.option('--max-workers', type=click.IntRange(min=1), help='Concurrent provider calls (overrides executor.max_workers)')
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON instead of human-readable')
@click.option('--quiet', is_flag=True, help='Suppress progress messages')
@click.pass_context
def apply(ctx, module_name, variables, var_files, state_path, provider_name, config_path, max_workers, as_json, quiet):
    """
    Apply a module: create, update and delete resources until state matches.

    Exits non-zero if any resource failed, was blocked or was canceled.
    """
    try:
        context = build_context(config_path, state_path, provider_name, var_files, variables,
                                verbose=(ctx.obj or {}).get("verbose", False))
        workers = max_workers or context.max_workers

        if not quiet:
            click.echo(f"Applying module '{module_name}' with {workers} workers...", err=True)
        result = apply_module(module_name, context.variables, context.store, context.provider,
                              config=context.config, max_workers=workers)

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
        click.echo(format_error(f"Apply failed: {e}"), err=True)
        sys.exit(1)
