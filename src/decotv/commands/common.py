"""Helpers shared by the command modules."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

import typer
from rich.console import Console

from decotv.config import get_config
from decotv.errors import DecotvError
from decotv.services.provisioner import SiteProvisioner

console = Console()


@contextmanager
def exit_on_error() -> Generator[None, None, None]:
    """Print a DecotvError in red and exit with its code."""
    try:
        yield
    except DecotvError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(exc.exit_code) from exc


def warn(message: str) -> None:
    console.print(f"  [yellow]Warning:[/yellow] {message}")


def get_provisioner() -> SiteProvisioner:
    return SiteProvisioner.from_config(get_config(), warn=warn)
