"""Container startup command"""

import os

import click
from rich.table import Table

from wazuh_entrypoint.cli.output import console, fail
from wazuh_entrypoint.errors import BootstrapError, CommandError
from wazuh_entrypoint.installer.base import Reporter
from wazuh_entrypoint.installer.bootstrap import run_bootstrap


@click.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.option("--env-file", type=click.Path(dir_okay=False), help="Permanent data env file")
@click.option("--skip-cleanup", is_flag=True, help="Keep the staging directory")
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx, env_file, skip_cleanup, command):
    """Run the startup sequence, then exec COMMAND if given"""
    cfg = ctx.obj["config"]
    if env_file:
        cfg["paths"]["permanent_data_env"] = env_file

    try:
        bootstrap_config = ctx.obj["manager"].build(cfg)
        log = Reporter(bootstrap_config.log_level, console)
        results = run_bootstrap(bootstrap_config, log, cleanup=not skip_cleanup)
    except BootstrapError as e:
        fail(e)

    if ctx.obj["verbose"]:
        print_summary(results)

    if command:
        handoff(list(command))


def print_summary(results):
    """Show what each step changed"""
    table = Table(title="Startup Summary", show_header=True)
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Changed", justify="right")

    for result in results:
        if result.skipped:
            status = "[dim]skipped[/dim]"
        elif result.changed:
            status = "[green]✓ changed[/green]"
        else:
            status = "[green]✓ up to date[/green]"
        table.add_row(result.name, status, str(len(result.changed)))

    console.print(table)


def handoff(command: list[str]):
    """Replace this process with the main service"""
    console.print(f"[dim]Starting: {' '.join(command)}[/dim]")
    try:
        os.execvp(command[0], command)
    except OSError as e:
        fail(CommandError(" ".join(command), stderr=str(e)))
