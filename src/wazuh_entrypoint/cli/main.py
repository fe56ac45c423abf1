#!/usr/bin/env python3
"""wazuh-entrypoint CLI - Main entry point"""

import json
from pathlib import Path

import click
import yaml

from wazuh_entrypoint.cli.output import console, fail
from wazuh_entrypoint.config.manager import ConfigManager
from wazuh_entrypoint.errors import BootstrapError


@click.group()
@click.option("--config", type=click.Path(dir_okay=False), help="YAML config file path")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, config, verbose):
    """Prepare the Wazuh install tree and persistent volume, then start the service"""
    ctx.ensure_object(dict)

    config_manager = ConfigManager(Path(config) if config else None)
    try:
        cfg = config_manager.load()
    except BootstrapError as e:
        fail(e)

    if verbose:
        cfg["logging"]["level"] = "debug"

    ctx.obj["manager"] = config_manager
    ctx.obj["config"] = cfg
    ctx.obj["verbose"] = verbose


@cli.command()
def version():
    """Show version information"""
    from wazuh_entrypoint import __version__

    console.print(f"wazuh-entrypoint version {__version__}")


@cli.command("config")
@click.option("--format", "output", type=click.Choice(["yaml", "json"]), default="yaml")
@click.pass_context
def show_config(ctx, output):
    """Print the resolved configuration"""
    try:
        resolved = ctx.obj["manager"].build(ctx.obj["config"]).to_dict()
    except BootstrapError as e:
        fail(e)

    if output == "json":
        click.echo(json.dumps(resolved, indent=2))
    else:
        click.echo(yaml.dump(resolved, default_flow_style=False), nl=False)


# Import subcommands
from wazuh_entrypoint.cli import plan, run

cli.add_command(run.run)
cli.add_command(plan.plan)


if __name__ == "__main__":
    cli()
