"""Modules command - list built-in modules and their inputs."""

import json
import sys
import click
from ...modules import BUILTIN_MODULES, get_module
from ...utils.errors import TopoPlanError
from ..utils import echo_text, format_error


@click.command()
@click.argument('name', required=False)
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON')
def modules(name, as_json):
    """List built-in modules, or show the inputs of one module."""
    try:
        selected = [get_module(name)] if name else [BUILTIN_MODULES[n] for n in sorted(BUILTIN_MODULES)]
    except TopoPlanError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([_describe(module) for module in selected], indent=2, default=str))
        return

    lines = []
    for module in selected:
        lines.append(f"{module.name}: {module.description}")
        for spec in module.inputs:
            if spec.is_mandatory:
                default = "required"
            else:
                default = f"default: {spec.default!r}"
            lines.append(f"  {spec.name:<26} {spec.type:<14} {default}")
        lines.append("")
    echo_text("\n".join(lines).rstrip())


def _describe(module) -> dict:
    return {
        "name": module.name,
        "description": module.description,
        "inputs": [
            {
                "name": spec.name,
                "type": spec.type,
                "required": spec.is_mandatory,
                "default": spec.default,
                "description": spec.description,
            }
            for spec in module.inputs
        ],
    }
