"""Application deployment model (compose + env file inputs)."""

from __future__ import annotations

from pydantic import BaseModel, Field

from decotv.constants import APP_CONTAINER, APP_IMAGE, APP_PORT, KV_CONTAINER, KV_IMAGE


class Deployment(BaseModel):
    """The application + key-value store pair managed by compose."""

    admin_user: str
    admin_password: str
    app_port: int = Field(default=APP_PORT, ge=1, le=65535)
    expose: bool = False
    app_image: str = APP_IMAGE
    kv_image: str = KV_IMAGE
    app_container: str = APP_CONTAINER
    kv_container: str = KV_CONTAINER

    @property
    def bind_address(self) -> str:
        return "0.0.0.0" if self.expose else "127.0.0.1"
