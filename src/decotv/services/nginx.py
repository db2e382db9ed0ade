"""NGINX config validation, reload and server_name scanning."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from decotv.errors import InvalidConfigError, NginxError
from decotv.services.process import has, output_of, run

_COMMENT_RE = re.compile(r"#[^\n]*")
_SERVER_NAME_RE = re.compile(r"\bserver_name\s+([^;{}]+);", re.MULTILINE)


@dataclass
class Nginx:
    """Host NGINX driven through its CLI."""

    nginx_bin: str = "nginx"
    timeout: float = 60.0

    def is_installed(self) -> bool:
        return has(self.nginx_bin)

    def test_config(self) -> subprocess.CompletedProcess[str]:
        """Run ``nginx -t``. Raises InvalidConfigError on failure."""
        result = run([self.nginx_bin, "-t"], timeout=self.timeout)
        if result.returncode != 0:
            raise InvalidConfigError(f"NGINX config test failed:\n{output_of(result)}")
        return result

    def reload(self) -> None:
        """Signal the running master to re-read its configuration."""
        result = run([self.nginx_bin, "-s", "reload"], timeout=self.timeout)
        if result.returncode != 0:
            raise NginxError(f"NGINX reload failed:\n{output_of(result)}")

    def start(self) -> None:
        """Enable and start the service (used only when nothing owns port 80)."""
        result = run(["systemctl", "enable", "--now", "nginx"], timeout=self.timeout)
        if result.returncode != 0:
            raise NginxError(f"Could not start NGINX:\n{output_of(result)}")


def parse_server_names(content: str) -> list[str]:
    """Return every name listed in ``server_name`` directives of *content*."""
    stripped = _COMMENT_RE.sub("", content)
    names: list[str] = []
    for match in _SERVER_NAME_RE.finditer(stripped):
        names.extend(match.group(1).split())
    return names


def name_matches(pattern: str, domain: str) -> bool:
    """Match *domain* against an nginx server_name entry."""
    pattern = pattern.lower()
    if pattern.startswith("~"):
        try:
            return re.search(pattern[1:], domain) is not None
        except re.error:
            return False
    if pattern.startswith("*."):
        return domain.endswith(pattern[1:])
    if pattern.startswith("."):
        return domain == pattern[1:] or domain.endswith(pattern)
    if pattern.endswith(".*"):
        return domain.startswith(pattern[:-1])
    return pattern == domain


def find_domain(dirs: Iterable[Path], domain: str) -> list[Path]:
    """Return the config files in *dirs* with a server_name matching *domain*.

    Symlinks (``sites-enabled``) are resolved so a file is reported once.
    """
    seen: set[Path] = set()
    hits: list[Path] = []
    for directory in dirs:
        if not directory.is_dir():
            continue
        for conf in sorted(directory.iterdir()):
            if conf.name.startswith(".") or not conf.is_file():
                continue
            if directory.name == "conf.d" and conf.suffix != ".conf":
                continue
            real = conf.resolve()
            if real in seen:
                continue
            seen.add(real)
            try:
                content = conf.read_text(errors="replace")
            except OSError:
                continue
            if any(name_matches(n, domain) for n in parse_server_names(content)):
                hits.append(conf)
    return hits
