"""Jinja2-based renderer for NGINX vhosts, the compose file and helper scripts."""

from __future__ import annotations

import re
from pathlib import Path

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from decotv.constants import MANAGED_MARKER
from decotv.models import Deployment, Site

_PLAIN_VALUE_RE = re.compile(r"^[A-Za-z0-9_.,:/@+-]*$")


def dotenv_quote(value: str) -> str:
    """Quote *value* for a compose ``.env`` file."""
    if _PLAIN_VALUE_RE.match(value):
        return value
    if "'" not in value:
        return f"'{value}'"
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "$$")
    return f'"{escaped}"'


def _get_env() -> Environment:
    env = Environment(
        loader=PackageLoader("decotv", "templates"),
        autoescape=select_autoescape([]),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
    env.filters["dotenv"] = dotenv_quote
    return env


def render_http_vhost(site: Site, webroot: Path) -> str:
    """Render the HTTP-only vhost: proxy + ACME challenge location."""
    template = _get_env().get_template("vhost_http.conf.j2")
    return template.render(site=site, webroot=webroot, marker=MANAGED_MARKER)


def render_https_vhost(site: Site, webroot: Path) -> str:
    """Render the two-block vhost (HTTP redirect + TLS termination)."""
    if site.certificate is None:
        raise ValueError(f"Site {site.domain} has no certificate to render")
    template = _get_env().get_template("vhost_https.conf.j2")
    return template.render(site=site, webroot=webroot, marker=MANAGED_MARKER)


def render_vhost(site: Site, webroot: Path, *, tls: bool) -> str:
    if tls:
        return render_https_vhost(site, webroot)
    return render_http_vhost(site, webroot)


def render_compose(deployment: Deployment, network: str) -> str:
    template = _get_env().get_template("compose.yml.j2")
    return template.render(deployment=deployment, network=network)


def render_env(deployment: Deployment) -> str:
    template = _get_env().get_template("env.j2")
    return template.render(deployment=deployment)


def render_renew_hook(nginx_bin: str) -> str:
    template = _get_env().get_template("renew-hook.sh.j2")
    return template.render(nginx_bin=nginx_bin, marker=MANAGED_MARKER)


def is_managed(content: str) -> bool:
    """True when *content* was generated by this tool."""
    return content.startswith(MANAGED_MARKER)


def is_managed_script(content: str) -> bool:
    return any(line.startswith(MANAGED_MARKER) for line in content.splitlines()[:3])
