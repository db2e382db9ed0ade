"""Manifest of the sites this provisioner instance owns."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

from decotv.constants import APP_PORT
from decotv.models.site import Site


class Manifest(BaseModel):
    """Domains owned by one deployment, persisted as JSON."""

    app_port: int = APP_PORT
    expose: bool = False
    sites: dict[str, Site] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> "Manifest":
        if not path.exists():
            return cls()
        return cls.model_validate_json(path.read_text())

    def save(self, path: Path) -> None:
        """Write atomically: temp file in the same directory, then rename."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".manifest-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(self.model_dump_json(indent=2))
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def owns(self, domain: str) -> bool:
        return domain in self.sites

    def get(self, domain: str) -> Site | None:
        return self.sites.get(domain)

    def put(self, site: Site) -> None:
        self.sites[site.domain] = site

    def remove(self, domain: str) -> Site | None:
        return self.sites.pop(domain, None)
