"""Tests for the Jinja2 renderer."""

from __future__ import annotations

from pathlib import Path

import pytest

from decotv.constants import MANAGED_MARKER
from decotv.models import Certificate, Deployment, Site, TlsState
from decotv.services.nginx import parse_server_names
from decotv.services.renderer import (
    dotenv_quote,
    is_managed,
    is_managed_script,
    render_compose,
    render_env,
    render_http_vhost,
    render_https_vhost,
    render_renew_hook,
)

WEBROOT = Path("/var/www/decotv-acme")


def _site(**kwargs) -> Site:
    params = dict(domain="tv.example.com", upstream_port=3000, config_path=Path("/etc/nginx/conf.d/x.conf"))
    params.update(kwargs)
    return Site(**params)


def _tls_site(**kwargs) -> Site:
    live = Path("/etc/letsencrypt/live/tv.example.com")
    return _site(
        tls_state=TlsState.ACTIVE,
        certificate=Certificate(domain="tv.example.com", cert_path=live / "fullchain.pem", key_path=live / "privkey.pem"),
        **kwargs,
    )


class TestVhostRenderer:
    def test_http_vhost_basic(self):
        config = render_http_vhost(_site(), WEBROOT)
        assert config.startswith(MANAGED_MARKER)
        assert is_managed(config)
        assert "listen 80;" in config
        assert "server_name tv.example.com;" in config
        assert "location ^~ /.well-known/acme-challenge/" in config
        assert "root /var/www/decotv-acme;" in config
        assert "proxy_pass http://127.0.0.1:3000;" in config
        assert "proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;" in config
        assert "proxy_set_header X-Forwarded-Proto $scheme;" in config
        assert "proxy_set_header X-Real-IP $remote_addr;" in config
        assert "443" not in config
        assert "return 301" not in config

    def test_http_vhost_balanced(self):
        config = render_http_vhost(_site(), WEBROOT)
        assert config.count("{") == config.count("}")
        assert config.count("server {") == 1

    def test_https_vhost_basic(self):
        config = render_https_vhost(_tls_site(), WEBROOT)

        # HTTP block: redirect everything but the challenge
        assert "listen 80;" in config
        assert "return 301 https://$host$request_uri;" in config
        assert config.index("acme-challenge") < config.index("return 301")

        # HTTPS block
        assert "listen 443 ssl http2;" in config
        assert "listen [::]:443 ssl http2;" in config
        # the standalone directive needs NGINX 1.25.1+, newer than Debian/Ubuntu ship
        assert "http2 on;" not in config
        assert "ssl_certificate     /etc/letsencrypt/live/tv.example.com/fullchain.pem;" in config
        assert "ssl_certificate_key /etc/letsencrypt/live/tv.example.com/privkey.pem;" in config
        assert "proxy_pass http://127.0.0.1:3000;" in config
        assert config.count("server {") == 2
        assert config.count("{") == config.count("}")
        assert parse_server_names(config) == ["tv.example.com", "tv.example.com"]

    def test_https_requires_certificate(self):
        with pytest.raises(ValueError):
            render_https_vhost(_site(), WEBROOT)

    def test_custom_timeouts(self):
        site = _site(client_max_body_size="100m", proxy_read_timeout="300s", proxy_send_timeout="300s")
        config = render_http_vhost(site, WEBROOT)
        assert "client_max_body_size 100m;" in config
        assert "proxy_read_timeout 300s;" in config
        assert "proxy_send_timeout 300s;" in config

    def test_foreign_content_not_managed(self):
        assert not is_managed("server { listen 80; }\n")


class TestComposeRenderer:
    def test_compose_local_only(self):
        deployment = Deployment(admin_user="admin", admin_password="s3cret")
        compose = render_compose(deployment, "decotv-net")
        assert '"127.0.0.1:3000:3000"' in compose
        assert "container_name: decotv-app" in compose
        assert "container_name: decotv-kv" in compose
        assert "redis://decotv-kv:6666" in compose
        assert "external: true" in compose
        assert "s3cret" not in compose

    def test_compose_exposed(self):
        deployment = Deployment(admin_user="admin", admin_password="x", app_port=8080, expose=True)
        assert '"0.0.0.0:8080:3000"' in render_compose(deployment, "decotv-net")

    def test_env_file(self):
        env = render_env(Deployment(admin_user="admin", admin_password="p@ss word"))
        assert "USERNAME=admin\n" in env
        assert "PASSWORD='p@ss word'\n" in env


class TestDotenvQuote:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("plain", "plain"),
            ("with space", "'with space'"),
            ("$HOME", "'$HOME'"),
            ("it's $5", '"it\'s $$5"'),
            ('say "hi" it\'s', '"say \\"hi\\" it\'s"'),
        ],
    )
    def test_quoting(self, value, expected):
        assert dotenv_quote(value) == expected


class TestRenewHook:
    def test_hook_reloads_after_test(self):
        script = render_renew_hook("nginx")
        assert script.startswith("#!/bin/sh\n")
        assert "nginx -t && nginx -s reload" in script
        assert is_managed_script(script)
