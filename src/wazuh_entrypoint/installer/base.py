"""Shared plumbing for the startup steps: output, step results and subprocesses"""

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from wazuh_entrypoint.errors import CommandError

console = Console(highlight=False, soft_wrap=True)

LEVELS = {"debug": 10, "info": 20, "warning": 30}


class Reporter:
    """Leveled console output for the startup steps"""

    def __init__(self, level: str = "info", out: Optional[Console] = None):
        self.level = LEVELS.get(level, LEVELS["info"])
        self.console = out or console

    def debug(self, message: str):
        if self.level <= LEVELS["debug"]:
            self.console.print(f"[dim]{message}[/dim]")

    def info(self, message: str):
        if self.level <= LEVELS["info"]:
            self.console.print(message)

    def success(self, message: str):
        if self.level <= LEVELS["info"]:
            self.console.print(f"  [green]✓[/green] {message}")

    def warning(self, message: str):
        self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def section(self, message: str):
        if self.level <= LEVELS["info"]:
            self.console.print(f"\n[bold cyan]{message}[/bold cyan]")


@dataclass
class StepResult:
    """Outcome of one startup step"""

    name: str
    changed: List[Path] = field(default_factory=list)
    skipped: bool = False


def run_command(cmd: list[str], log: Optional[Reporter] = None, cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """Run a command and fail on a non-zero exit"""
    log = log or Reporter()
    log.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise CommandError(" ".join(cmd), stderr=str(e))

    if result.returncode != 0:
        raise CommandError(" ".join(cmd), result.returncode, result.stderr)

    return result
