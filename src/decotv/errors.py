"""Custom exceptions for decotv."""

from __future__ import annotations


class DecotvError(Exception):
    """Base exception for all decotv operations."""

    def __init__(self, message: str, *, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class ValidationError(DecotvError):
    """Operator input (domain, port, email) is malformed."""


class DomainConflictError(DecotvError):
    """A site not owned by this provisioner already serves the domain."""


class PortUnavailableError(DecotvError):
    """Port 80/443 is held by a process other than the reverse proxy."""

    def __init__(self, message: str, *, port: int, owner: str = "", exit_code: int = 3):
        super().__init__(message, exit_code=exit_code)
        self.port = port
        self.owner = owner


class InvalidConfigError(DecotvError):
    """NGINX configuration test failed; the previous config was restored."""


class IssuanceFailedError(DecotvError):
    """Certificate issuance failed; the site stays on plain HTTP."""

    def __init__(self, message: str, *, reason: str, exit_code: int = 4):
        super().__init__(message, exit_code=exit_code)
        self.reason = reason


class DependencyMissingError(DecotvError):
    """A required external program is absent and cannot be installed here."""


class UnsupportedOSError(DependencyMissingError):
    """Automatic installation is only supported on Debian/Ubuntu."""


class DockerError(DecotvError):
    """Docker/Compose operation failed."""


class NginxError(DecotvError):
    """An nginx command (other than the config test) failed."""


class SiteNotFoundError(DecotvError):
    """The domain is not bound by this provisioner."""


class DeploymentNotFoundError(DecotvError):
    """No compose file exists; deploy first."""


class LockTimeoutError(DecotvError):
    """The reverse-proxy lock is held by another operation."""
