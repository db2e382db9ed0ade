"""Host bootstrap command."""

from __future__ import annotations

import typer

from decotv.audit import audit
from decotv.commands.common import console, exit_on_error
from decotv.config import get_config
from decotv.services import docker, system


def bootstrap(
    with_proxy: bool = typer.Option(False, "--with-proxy", help="Also install NGINX and certbot"),
) -> None:
    """Prepare a fresh Debian/Ubuntu host: base packages, Docker, compose, network."""
    cfg = get_config()

    with exit_on_error(), audit("bootstrap", target=cfg.host_id, with_proxy=with_proxy):
        system.require_root()
        total = 5 if with_proxy else 4

        console.print(f"[bold][1/{total}][/bold] Installing prerequisites")
        os_id = system.detect_os()
        system.apt_install(*system.BASE_PACKAGES)
        console.print(f"  {os_id}: {', '.join(system.BASE_PACKAGES)}")

        console.print(f"[bold][2/{total}][/bold] Installing Docker Engine")
        console.print("  installed" if system.ensure_docker() else "  already present")

        console.print(f"[bold][3/{total}][/bold] Checking compose")
        console.print(f"  {system.ensure_compose()}")

        console.print(f"[bold][4/{total}][/bold] Creating Docker network")
        created = docker.ensure_network(cfg.docker_network)
        console.print(f"  {cfg.docker_network}: {'created' if created else 'exists'}")

        if with_proxy:
            console.print(f"[bold][5/{total}][/bold] Installing NGINX and certbot")
            for program in ("nginx", "certbot"):
                installed = system.ensure_program(program, program)
                console.print(f"  {program}: {'installed' if installed else 'already present'}")
            cfg.acme_webroot.mkdir(parents=True, exist_ok=True)

        console.print("\n[green bold]Bootstrap complete![/green bold]")
