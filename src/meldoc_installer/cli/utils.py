"""CLI utility functions and helpers."""

from dataclasses import dataclass
from typing import Iterable, Optional

import click

BANNER = r"""
                 _     _
  _ __ ___   ___| | __| | ___   ___
 | '_ ` _ \ / _ \ |/ _` |/ _ \ / __|
 | | | | | |  __/ | (_| | (_) | (__
 |_| |_| |_|\___|_|\__,_|\___/ \___|
"""

STATUS_ICONS = {
    "info": "==>",
    "success": "✓",
    "warning": "⚠",
    "error": "✗",
}

STATUS_COLORS = {
    "info": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


def print_status_indicator(
    status: str,
    message: str,
    details: Optional[str] = None,
    err: bool = False,
):
    """Print a status line with a colored icon and optional details."""
    icon = STATUS_ICONS.get(status, "•")
    click.secho(f"{icon} ", fg=STATUS_COLORS.get(status), nl=False, err=err)
    click.echo(message, err=err)

    if details:
        click.echo(f"  {details}", err=err)


def print_rule(color: str = "green", width: int = 67):
    click.secho("━" * width, fg=color)


@dataclass(frozen=True)
class Console:
    """User-facing output that honours ``--quiet``.

    Warnings and errors are always shown; everything else is suppressed in
    quiet mode.
    """

    quiet: bool = False

    def info(self, message: str):
        if not self.quiet:
            print_status_indicator("info", message)

    def success(self, message: str):
        if not self.quiet:
            print_status_indicator("success", message)

    def warning(self, message: str):
        print_status_indicator("warning", message, err=self.quiet)

    def error(self, message: str):
        print_status_indicator("error", message, err=True)

    def output(self, message: str = ""):
        if not self.quiet:
            click.echo(message)

    def lines(self, lines: Iterable[str], indent: str = "  "):
        for line in lines:
            self.output(f"{indent}{line}")

    def banner(self, title: str):
        if self.quiet:
            return
        click.secho(BANNER, fg="cyan")
        click.secho(title, bold=True)
        click.echo("")


def confirm_action(message: str, default: bool = False) -> bool:
    """Ask for a yes/no confirmation with a warning icon."""
    click.secho(f"{STATUS_ICONS['warning']} ", fg=STATUS_COLORS["warning"], nl=False)
    return click.confirm(message, default=default)
