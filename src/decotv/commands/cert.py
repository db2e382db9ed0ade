"""SSL certificate management commands."""

from __future__ import annotations

from datetime import datetime, timezone

import typer
from rich.table import Table

from decotv.audit import audit
from decotv.commands.common import console, exit_on_error, get_provisioner

app = typer.Typer(no_args_is_help=True)


@app.command()
def renew() -> None:
    """Renew expiring certificates (NGINX reloads only if one changed)."""
    provisioner = get_provisioner()

    with exit_on_error(), audit("cert.renew"):
        provisioner.scheduler.install_hook()
        output = provisioner.certbot.renew()
        console.print(output)
        console.print("[green]Done.[/green]")


@app.command()
def status() -> None:
    """Show certificate expiry for every live certificate."""
    provisioner = get_provisioner()
    owned = {s.domain for s in provisioner.sites()}
    now = datetime.now(timezone.utc)

    table = Table(title="SSL Certificates")
    table.add_column("Domain", style="cyan")
    table.add_column("Expires", style="yellow")
    table.add_column("Days left")
    table.add_column("Managed")

    for domain, expiry in provisioner.certbot.list_certs():
        if expiry is None:
            table.add_row(domain, "unknown", "", "yes" if domain in owned else "no")
            continue
        days = (expiry - now).days
        style = "red" if days < 14 else "green"
        table.add_row(
            domain,
            expiry.strftime("%Y-%m-%d %H:%M UTC"),
            f"[{style}]{days}[/{style}]",
            "yes" if domain in owned else "no",
        )

    console.print(table)


@app.command()
def schedule() -> None:
    """Install periodic renewal (certbot.timer if present, else a daily cron job)."""
    provisioner = get_provisioner()

    with exit_on_error(), audit("cert.schedule") as event:
        mode = provisioner.scheduler.schedule()
        event.params["mode"] = mode
        if mode == "systemd":
            console.print("[green]Renewal handled by certbot.timer; reload hook installed.[/green]")
        else:
            console.print("[green]Daily renewal cron job installed; reload hook installed.[/green]")
