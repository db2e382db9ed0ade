"""Site and certificate models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from decotv.constants import (
    DEFAULT_CLIENT_MAX_BODY_SIZE,
    DEFAULT_PROXY_READ_TIMEOUT,
    DEFAULT_PROXY_SEND_TIMEOUT,
)


class TlsState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    ACTIVE = "active"


class Certificate(BaseModel):
    """A certbot-managed certificate referenced by a site."""

    domain: str
    cert_path: Path
    key_path: Path
    expires_at: datetime | None = None


class Site(BaseModel):
    """A domain bound to a local upstream port behind the reverse proxy."""

    domain: str
    upstream_port: int = Field(ge=1, le=65535)
    tls_state: TlsState = TlsState.NONE
    config_path: Path
    certificate: Certificate | None = None
    client_max_body_size: str = DEFAULT_CLIENT_MAX_BODY_SIZE
    proxy_read_timeout: str = DEFAULT_PROXY_READ_TIMEOUT
    proxy_send_timeout: str = DEFAULT_PROXY_SEND_TIMEOUT

    @property
    def upstream(self) -> str:
        return f"127.0.0.1:{self.upstream_port}"
