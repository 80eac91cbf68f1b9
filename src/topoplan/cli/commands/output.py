"""Output command - show module outputs resolved from state."""

import json
import sys
import click
from ... import build
from ...presentation.human_formatter import format_outputs_lines
from ...utils.errors import TopoPlanError
from ...utils.logging import get_logger
from ..utils import build_context, common_options, echo_text, format_error

logger = get_logger("cli.output")


@click.command()
@click.option('--module', '-m', 'module_name', required=True, help='Built-in module whose outputs to show')
@common_options
@click.option('--name', 'output_name', help='Print a single output')
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON')
@click.pass_context
def output(ctx, module_name, variables, var_files, state_path, provider_name, config_path, output_name, as_json):
    """Print module outputs; fails if any output has not been applied yet."""
    try:
        context = build_context(config_path, state_path, provider_name, var_files, variables,
                                verbose=(ctx.obj or {}).get("verbose", False))
        instance, _ = build(module_name, context.variables, context.config)
        outputs = instance.resolve_outputs(context.store, strict=True)

        if output_name is not None:
            if output_name not in outputs:
                raise TopoPlanError(f"Module '{module_name}' has no output '{output_name}'")
            outputs = {output_name: outputs[output_name]}

        if as_json:
            click.echo(json.dumps(outputs, indent=2, default=str))
        else:
            echo_text("\n".join(format_outputs_lines(outputs)))

    except TopoPlanError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Reading outputs failed: {e}"), err=True)
        sys.exit(1)
