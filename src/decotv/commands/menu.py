"""Interactive numbered menu wrapping the lifecycle commands."""

from __future__ import annotations

from collections.abc import Callable

import typer

from decotv.commands import app as app_cmds
from decotv.commands import site as site_cmds
from decotv.commands.common import console
from decotv.config import get_config
from decotv.constants import CLI_PATH

_TITLE = "==== DecoTV management ===="


def _deploy() -> None:
    user = typer.prompt("Admin username")
    password = typer.prompt("Admin password", confirmation_prompt=True, hide_input=True)
    app_cmds.deploy(user=user, password=password, port=3000, expose=False, domain=None, tls=False, email=None)


def _bind() -> None:
    cfg = get_config()
    domain = typer.prompt("Domain")
    tls = typer.confirm("Enable HTTPS (Let's Encrypt)?", default=True)
    email = typer.prompt("Contact email", default=cfg.certbot_email or "") if tls else ""
    site_cmds.bind(domain=domain, port=None, tls=tls, email=email or None)


def _unbind() -> None:
    site_cmds.unbind(domain=typer.prompt("Domain"), yes=False)


_ENTRIES: list[tuple[str, Callable[[], None]]] = [
    ("Deploy (no domain)", _deploy),
    ("Update images", app_cmds.update),
    ("Start", app_cmds.start),
    ("Stop", app_cmds.stop),
    ("Status", app_cmds.status),
    ("Bind a domain", _bind),
    ("Unbind a domain", _unbind),
    ("List sites", site_cmds.list_sites),
    ("Uninstall", lambda: app_cmds.uninstall(yes=False)),
    ("Install the decotv shortcut", lambda: app_cmds.install_cli(target=CLI_PATH)),
]


def menu() -> None:
    """Numbered menu for operators who prefer not to type subcommands."""
    while True:
        console.print(f"\n[bold]{_TITLE}[/bold]")
        for index, (label, _action) in enumerate(_ENTRIES, start=1):
            console.print(f"  {index}) {label}")
        console.print("  0) Exit")

        choice = typer.prompt("Select", default="0")
        if choice == "0":
            return
        if not choice.isdigit() or not 1 <= int(choice) <= len(_ENTRIES):
            console.print("[yellow]Invalid choice[/yellow]")
            continue

        _label, action = _ENTRIES[int(choice) - 1]
        try:
            action()
        except (typer.Exit, typer.Abort):
            pass
