"""Application lifecycle commands: deploy, update, start, stop, status, uninstall."""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from decotv.audit import audit
from decotv.commands.common import console, exit_on_error, get_provisioner
from decotv.commands.site import bind_site
from decotv.config import get_config
from decotv.constants import CLI_PATH
from decotv.errors import DecotvError, IssuanceFailedError
from decotv.models import Deployment, Manifest, TlsState
from decotv.services import deployment as deployments
from decotv.services import docker, network, system
from decotv.validators import validate_credential, validate_port


def deploy(
    user: str = typer.Option(..., prompt="Admin username", help="DecoTV admin username"),
    password: str = typer.Option(
        ..., prompt="Admin password", confirmation_prompt=True, hide_input=True,
        help="DecoTV admin password",
    ),
    port: int = typer.Option(3000, help="Host port published for the app"),
    expose: bool = typer.Option(False, "--expose", help="Publish on 0.0.0.0 instead of 127.0.0.1"),
    domain: Optional[str] = typer.Option(None, help="Also bind this domain through NGINX"),
    tls: bool = typer.Option(False, "--tls", help="Issue a certificate for --domain"),
    email: Optional[str] = typer.Option(None, help="ACME contact email"),
) -> None:
    """Install Docker if needed, write the compose file and start the app."""
    cfg = get_config()

    with exit_on_error():
        validate_port(port)
        deployment = Deployment(
            admin_user=validate_credential(user, "Username"),
            admin_password=validate_credential(password, "Password"),
            app_port=port,
            expose=expose,
        )

        with audit("app.deploy", target=str(cfg.base_dir), port=port, expose=expose, domain=domain or ""):
            total = 3 if domain else 2
            console.print(f"[bold][1/{total}][/bold] Checking Docker and compose")
            system.apt_install(*system.BASE_PACKAGES)
            if system.ensure_docker():
                console.print("  Docker installed")
            console.print(f"  compose: {system.ensure_compose()}")

            console.print(f"[bold][2/{total}][/bold] Writing {cfg.compose_file} and starting containers")
            deployments.deploy(cfg, deployment)
            console.print("  [green]✓[/green] Containers started")

            if domain:
                console.print(f"[bold][3/{total}][/bold] Binding {domain}")
                try:
                    bind_site(domain, port, tls, email or cfg.certbot_email)
                except IssuanceFailedError:
                    pass

        console.print("\n[green bold]Deployed![/green bold]")
        console.print(f"  Local:     http://127.0.0.1:{port}")
        if expose:
            ip = network.public_ip(cfg.lookup_timeout) or "<server-ip>"
            console.print(f"  Public:    http://{ip}:{port}")
        console.print(f"  Username:  {deployment.admin_user}")
        console.print(f"  Directory: {cfg.base_dir}")
        if not domain:
            console.print("  Bind a domain with: decotv site bind --domain <name> [--tls]")


def update() -> None:
    """Pull new images and re-apply the compose file."""
    cfg = get_config()
    with exit_on_error(), audit("app.update"):
        deployments.update(cfg)
        console.print("[green]Update complete.[/green]")


def start() -> None:
    """Start the app (idempotent)."""
    cfg = get_config()
    with exit_on_error(), audit("app.start"):
        deployments.start(cfg)
        console.print("[green]Started.[/green]")


def stop() -> None:
    """Stop the app containers."""
    cfg = get_config()
    with exit_on_error(), audit("app.stop"):
        deployments.stop(cfg)
        console.print("[yellow]Stopped.[/yellow]")


def status() -> None:
    """Show containers, bound sites and a local health check."""
    cfg = get_config()
    manifest = Manifest.load(cfg.manifest_path)

    with exit_on_error():
        rows = docker.ps_matching("decotv-")

    table = Table(title="Containers")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Ports")
    for row in rows:
        table.add_row(row["name"], row["status"], row["ports"])
    console.print(table)

    for site in sorted(manifest.sites.values(), key=lambda s: s.domain):
        scheme = "https" if site.tls_state == TlsState.ACTIVE else "http"
        console.print(f"  Site: {scheme}://{site.domain}/ → {site.upstream}")

    if deployments.health_check(manifest.app_port, timeout=cfg.lookup_timeout):
        console.print(f"[green]OK:[/green] 127.0.0.1:{manifest.app_port} is reachable")
    else:
        console.print(
            f"[yellow]WARN:[/yellow] 127.0.0.1:{manifest.app_port} not reachable yet "
            "(containers may still be starting)"
        )


def uninstall(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Remove bound sites, containers, volumes, network and the deployment directory."""
    cfg = get_config()
    provisioner = get_provisioner()

    if not yes:
        console.print(f"\n[bold red]About to uninstall DecoTV from {cfg.base_dir}[/bold red]")
        console.print("  Only this project's sites, certificates, containers, volumes and network are removed.")
        if not typer.confirm("Continue?"):
            raise typer.Abort()

    with exit_on_error(), audit("app.uninstall", target=str(cfg.base_dir)):
        failed: list[str] = []
        for site in provisioner.sites():
            console.print(f"  Unbinding {site.domain}")
            try:
                result = provisioner.unbind(site.domain)
            except DecotvError as exc:
                console.print(f"  [red]Failed:[/red] {site.domain}: {exc}")
                failed.append(site.domain)
                continue
            for message in result.warnings:
                console.print(f"  [yellow]Warning:[/yellow] {message}")

        # base_dir holds the manifest; keep it while any site is still bound.
        if failed:
            raise DecotvError(
                f"Could not unbind {', '.join(failed)}; containers and {cfg.base_dir} were kept. "
                "Fix the cause and run 'decotv uninstall' again."
            )

        report = deployments.teardown(cfg)
        for item in report.removed:
            console.print(f"  Removed: {item}")
        for message in report.warnings:
            console.print(f"  [yellow]Warning:[/yellow] {message}")
        console.print("[green]Uninstalled.[/green]")


def install_cli(
    target: Path = typer.Option(CLI_PATH, help="Where to place the shortcut"),
) -> None:
    """Link the decotv command into /usr/local/bin."""
    source = shutil.which("decotv") or sys.argv[0]
    source_path = Path(source).resolve()
    with exit_on_error(), audit("app.install-cli", target=str(target)):
        if target.resolve() == source_path:
            console.print(f"Already installed: {target}")
            return
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.exists() or target.is_symlink():
            target.unlink()
        os.symlink(source_path, target)
        console.print(f"[green]Installed shortcut:[/green] {target} → {source_path}")


def port_check(
    port: int = typer.Option(80, help="Port to inspect"),
) -> None:
    """Report whether a port is free, held by NGINX, or held by something else."""
    with exit_on_error():
        status_ = network.port_status(port)
    colour = {"free": "green", "proxy": "green", "other": "red"}[status_.owner.value]
    console.print(f"[{colour}]{status_.describe()}[/{colour}] ({status_.owner.value})")
