"""Site binding commands: domain → local app port behind NGINX."""

from __future__ import annotations

from typing import Optional

import typer
from rich.syntax import Syntax
from rich.table import Table

from decotv.audit import audit
from decotv.commands.common import console, exit_on_error, get_provisioner
from decotv.config import get_config
from decotv.errors import IssuanceFailedError, PortUnavailableError
from decotv.models import Manifest, Site
from decotv.services import network
from decotv.validators import validate_email

app = typer.Typer(no_args_is_help=True)


def _direct_access_hint(port: int) -> None:
    """Fallback when port 80 belongs to someone else: reach the app on its own port."""
    cfg = get_config()
    manifest = Manifest.load(cfg.manifest_path)
    ip = network.public_ip(cfg.lookup_timeout) or "<server-ip>"
    console.print("\n[yellow]Reverse proxy not configured; port 80 is left untouched.[/yellow]")
    if manifest.expose:
        console.print(f"The app is reachable directly at [cyan]http://{ip}:{port}[/cyan] (no TLS, no domain routing).")
    else:
        console.print(
            f"The app listens on 127.0.0.1:{port} only. To reach it directly, redeploy with "
            "[cyan]decotv deploy --expose[/cyan] and open "
            f"[cyan]http://{ip}:{port}[/cyan]."
        )


def bind_site(domain: str, port: int, tls: bool, email: str) -> Site:
    """Bind (and optionally secure) a domain; shared by the CLI, deploy and the menu."""
    provisioner = get_provisioner()
    if tls and email:
        # Validated before bind so a bad address changes nothing.
        email = validate_email(email)

    with audit("site.bind", target=domain, port=port, tls=tls) as event:
        console.print(f"[bold][1/2][/bold] Binding {domain} → 127.0.0.1:{port}")
        try:
            site = provisioner.bind(domain, port)
        except PortUnavailableError:
            _direct_access_hint(port)
            raise
        console.print(f"  [green]✓[/green] http://{site.domain}/ is live ({site.config_path})")

        if not tls:
            console.print("[bold][2/2][/bold] Skipping HTTPS (use --tls to enable)")
            return site

        console.print(f"[bold][2/2][/bold] Requesting a Let's Encrypt certificate for {domain}")
        try:
            site = provisioner.enable_tls(domain, email)
        except IssuanceFailedError as exc:
            event.params["tls_reason"] = exc.reason
            console.print(f"  [yellow]HTTPS not enabled ({exc.reason}); site still reachable over HTTP.[/yellow]")
            raise
        console.print(f"  [green]✓[/green] https://{site.domain}/ is live")
        return site


@app.command()
def bind(
    domain: str = typer.Option(..., help="Domain name (e.g., tv.example.com)"),
    port: Optional[int] = typer.Option(None, help="Local app port (default: the deployed port)"),
    tls: bool = typer.Option(False, "--tls", help="Also issue a Let's Encrypt certificate"),
    email: Optional[str] = typer.Option(None, help="ACME contact email (default: DECOTV_CERTBOT_EMAIL)"),
) -> None:
    """Serve a domain through NGINX, proxying to the local app."""
    cfg = get_config()
    with exit_on_error():
        if port is None:
            port = Manifest.load(cfg.manifest_path).app_port
        bind_site(domain, port, tls, email or cfg.certbot_email)


@app.command(name="tls")
def enable_tls(
    domain: str = typer.Option(..., help="Bound domain to secure"),
    email: Optional[str] = typer.Option(None, help="ACME contact email (default: DECOTV_CERTBOT_EMAIL)"),
) -> None:
    """Issue a certificate for a bound domain and switch it to HTTPS."""
    cfg = get_config()
    provisioner = get_provisioner()
    with exit_on_error(), audit("site.tls", target=domain) as event:
        try:
            site = provisioner.enable_tls(domain, email or cfg.certbot_email)
        except IssuanceFailedError as exc:
            event.params["reason"] = exc.reason
            raise
        console.print(f"[green]HTTPS enabled:[/green] https://{site.domain}/")


@app.command()
def unbind(
    domain: str = typer.Option(..., help="Domain to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Remove a domain's NGINX config and certificate (other sites are untouched)."""
    provisioner = get_provisioner()
    with exit_on_error():
        site = provisioner.get_site(domain)
        if not yes:
            console.print(f"\n[bold red]About to unbind:[/bold red] {site.domain}")
            console.print(f"  Config: {site.config_path}")
            if site.certificate is not None:
                console.print(f"  Certificate: {site.certificate.cert_path.parent} (will be deleted)")
            if not typer.confirm("Continue?"):
                raise typer.Abort()

        with audit("site.unbind", target=site.domain):
            result = provisioner.unbind(site.domain)
            for path in result.removed_files:
                console.print(f"  Removed: {path}")
            if result.cert_deleted:
                console.print(f"  Deleted certificate for: {site.domain}")
            for message in result.warnings:
                console.print(f"  [yellow]Warning:[/yellow] {message}")
            console.print(f"[green]Done.[/green] {site.domain} unbound.")


@app.command(name="list")
def list_sites() -> None:
    """List domains bound by this deployment."""
    provisioner = get_provisioner()
    with exit_on_error():
        sites = provisioner.sites()

    if not sites:
        console.print("No sites bound.")
        return

    table = Table(title="Bound Sites")
    table.add_column("Domain", style="cyan")
    table.add_column("Upstream")
    table.add_column("TLS", style="yellow")
    table.add_column("Expires")
    table.add_column("Config")
    for site in sites:
        expires = ""
        if site.certificate is not None and site.certificate.expires_at is not None:
            expires = site.certificate.expires_at.strftime("%Y-%m-%d")
        table.add_row(site.domain, site.upstream, site.tls_state.value, expires, str(site.config_path))
    console.print(table)


@app.command()
def show(
    domain: str = typer.Argument(help="Domain name to show config for"),
) -> None:
    """Display the generated NGINX config for a domain."""
    provisioner = get_provisioner()
    with exit_on_error():
        site = provisioner.get_site(domain)

    if not site.config_path.exists():
        console.print(f"[red]Config missing for {domain}: {site.config_path}[/red]")
        raise typer.Exit(1)
    console.print(Syntax(site.config_path.read_text(), "nginx", theme="monokai"))
