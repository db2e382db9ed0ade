"""Root Typer application for the decotv CLI."""

from __future__ import annotations

import typer

from decotv.commands import app as app_cmds
from decotv.commands import bootstrap, cert, menu, site

app = typer.Typer(
    name="decotv",
    help="Deploy DecoTV on a VPS and publish it through NGINX with optional Let's Encrypt TLS.",
    no_args_is_help=True,
)

app.add_typer(site.app, name="site", help="Bind / unbind domains behind the reverse proxy.")
app.add_typer(cert.app, name="cert", help="SSL certificate management.")
app.command(name="deploy")(app_cmds.deploy)
app.command(name="update")(app_cmds.update)
app.command(name="start")(app_cmds.start)
app.command(name="stop")(app_cmds.stop)
app.command(name="status")(app_cmds.status)
app.command(name="uninstall")(app_cmds.uninstall)
app.command(name="install-cli")(app_cmds.install_cli)
app.command(name="port-check")(app_cmds.port_check)
app.command(name="bootstrap")(bootstrap.bootstrap)
app.command(name="menu")(menu.menu)

if __name__ == "__main__":
    app()
