"""Tests for the Pydantic models."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from decotv.models import AuditEvent, Certificate, Deployment, Manifest, Site, TlsState


class TestAuditEvent:
    def test_defaults(self):
        event = AuditEvent(action="test.action", target="example.com")
        assert event.result == "success"
        assert event.error is None
        assert isinstance(event.timestamp, datetime)

    def test_to_jsonl(self):
        event = AuditEvent(action="site.bind", target="tv.example.com", actor="root", params={"port": 3000})
        data = json.loads(event.to_jsonl())
        assert data["action"] == "site.bind"
        assert data["params"]["port"] == 3000


class TestSite:
    def test_defaults(self):
        site = Site(domain="tv.example.com", upstream_port=3000, config_path=Path("/x.conf"))
        assert site.tls_state == TlsState.NONE
        assert site.certificate is None
        assert site.upstream == "127.0.0.1:3000"
        assert site.client_max_body_size == "20m"

    @pytest.mark.parametrize("port", [0, 65536])
    def test_port_range(self, port):
        with pytest.raises(ValidationError):
            Site(domain="tv.example.com", upstream_port=port, config_path=Path("/x.conf"))


class TestDeployment:
    def test_bind_address(self):
        assert Deployment(admin_user="a", admin_password="b").bind_address == "127.0.0.1"
        assert Deployment(admin_user="a", admin_password="b", expose=True).bind_address == "0.0.0.0"


class TestManifest:
    def test_missing_file_is_empty(self, tmp_path: Path):
        manifest = Manifest.load(tmp_path / "manifest.json")
        assert manifest.sites == {}
        assert manifest.app_port == 3000

    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "deploy" / "manifest.json"
        manifest = Manifest(app_port=3100)
        site = Site(
            domain="tv.example.com",
            upstream_port=3100,
            config_path=Path("/etc/nginx/conf.d/decotv-tv.example.com.conf"),
            tls_state=TlsState.ACTIVE,
            certificate=Certificate(
                domain="tv.example.com",
                cert_path=Path("/etc/letsencrypt/live/tv.example.com/fullchain.pem"),
                key_path=Path("/etc/letsencrypt/live/tv.example.com/privkey.pem"),
            ),
        )
        manifest.put(site)
        manifest.save(path)

        loaded = Manifest.load(path)
        assert loaded.app_port == 3100
        assert loaded.get("tv.example.com") == site
        assert [p.name for p in path.parent.iterdir()] == ["manifest.json"]

    def test_remove(self):
        manifest = Manifest()
        manifest.put(Site(domain="a.example.com", upstream_port=1, config_path=Path("/a.conf")))
        assert manifest.remove("a.example.com") is not None
        assert manifest.remove("a.example.com") is None
        assert not manifest.owns("a.example.com")
