"""Pydantic models."""

from decotv.models.audit_event import AuditEvent
from decotv.models.deployment import Deployment
from decotv.models.manifest import Manifest
from decotv.models.site import Certificate, Site, TlsState

__all__ = ["AuditEvent", "Certificate", "Deployment", "Manifest", "Site", "TlsState"]
