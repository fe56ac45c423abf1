"""Console output shared by the CLI commands"""

import sys

from rich.console import Console

from wazuh_entrypoint.errors import BootstrapError

console = Console(highlight=False, soft_wrap=True)


def fail(error: BootstrapError):
    """Print the diagnostic for a failed operation and exit 1"""
    console.print(f"[red]✗ Failed:[/red] {error.operation}")
    if error.message:
        console.print(f"[dim]{error.message}[/dim]")
    sys.exit(1)
