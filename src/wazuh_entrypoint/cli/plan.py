"""Read-only view of what the startup sequence would do"""

import click
from rich.table import Table

from wazuh_entrypoint.cli.output import console, fail
from wazuh_entrypoint.config.manager import rerooted
from wazuh_entrypoint.errors import BootstrapError
from wazuh_entrypoint.installer.bootstrap import is_populated


@click.command()
@click.option("--env-file", type=click.Path(dir_okay=False), help="Permanent data env file")
@click.pass_context
def plan(ctx, env_file):
    """Show the state of the persistent volume and the staged files"""
    cfg = ctx.obj["config"]
    if env_file:
        cfg["paths"]["permanent_data_env"] = env_file

    try:
        bootstrap_config = ctx.obj["manager"].build(cfg)
    except BootstrapError as e:
        fail(e)

    table = Table(title="Startup Plan", show_header=True)
    table.add_column("Set", style="cyan")
    table.add_column("Path", style="blue")
    table.add_column("Action")

    missing_backup = False
    for permanent_dir in bootstrap_config.permanent_data:
        if is_populated(permanent_dir):
            action = "[dim]already mounted[/dim]"
        elif rerooted(bootstrap_config.backup_root, permanent_dir).is_dir():
            action = "[green]install from backup[/green]"
        else:
            action = "[red]✗ backup missing[/red]"
            missing_backup = True
        table.add_row("permanent", str(permanent_dir), action)

    for exclusion_file in bootstrap_config.exclusion_data:
        if rerooted(bootstrap_config.exclusion_root, exclusion_file).exists():
            action = "[green]refresh[/green]"
        else:
            action = "[dim]no bundled copy[/dim]"
        table.add_row("exclusion", str(exclusion_file), action)

    for del_file in bootstrap_config.deletion_data:
        action = "[yellow]remove[/yellow]" if del_file.exists() else "[dim]absent[/dim]"
        table.add_row("delete", str(del_file), action)

    console.print(table)

    enroll = bootstrap_config.auto_enrollment and not bootstrap_config.ssl_key.exists()
    console.print(f"\n[bold]Create enrollment key:[/bold] {'yes' if enroll else 'no'}")
    console.print(f"[bold]Config mount:[/bold] {'present' if bootstrap_config.config_mount.is_dir() else 'absent'}")
    console.print(f"[bold]Ruleset sync:[/bold] {bootstrap_config.ruleset_s3_path or 'disabled'}")
    console.print(f"[bold]Cron:[/bold] {'enabled' if bootstrap_config.cron_enabled else 'disabled'}")

    if missing_backup:
        console.print("\n[red]✗ Some persistent directories have no bundled backup[/red]")
        ctx.exit(1)
