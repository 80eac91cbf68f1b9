"""Main CLI entry point for topoplan."""

import click
from .commands.apply import apply
from .commands.destroy import destroy
from .commands.modules import modules
from .commands.output import output
from .commands.plan import plan
from .commands.validate import validate
from .. import __version__
from ..utils.logging import get_logger

logger = get_logger("cli.main")


@click.group()
@click.version_option(version=__version__, prog_name="topoplan", message="%(prog)s version %(version)s")
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, verbose):
    """topoplan - Plan and apply network and EKS topology."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


cli.add_command(plan)
cli.add_command(apply)
cli.add_command(destroy)
cli.add_command(output)
cli.add_command(validate)
cli.add_command(modules)
