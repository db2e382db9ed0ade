"""Input validation for operator-supplied values.

Everything here ends up in generated config files or on a command line, so
values are checked strictly rather than sanitized.
"""

from __future__ import annotations

import re

from decotv.errors import ValidationError

_LABEL_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_domain(domain: str) -> str:
    """Validate a hostname and return it lower-cased.

    - No scheme, path, port or whitespace
    - At least two labels, each 1-63 chars, alphanumeric with inner hyphens
    - Total length at most 253 chars
    - Top-level label is not purely numeric
    """
    if not domain:
        raise ValidationError("Domain cannot be empty")

    domain = domain.strip().lower().rstrip(".")

    if "://" in domain or "/" in domain or ":" in domain:
        raise ValidationError(f"Domain must be a bare hostname, got: {domain}")

    if len(domain) > 253:
        raise ValidationError("Domain must be 253 characters or less")

    labels = domain.split(".")
    if len(labels) < 2:
        raise ValidationError(f"Domain must contain at least one dot: {domain}")

    for label in labels:
        if not _LABEL_RE.match(label):
            raise ValidationError(f"Invalid domain label '{label}' in {domain}")

    if labels[-1].isdigit():
        raise ValidationError(f"Domain cannot be an IP address: {domain}")

    return domain


def validate_port(port: int) -> int:
    if not 1 <= port <= 65535:
        raise ValidationError(f"Port must be between 1 and 65535, got {port}")
    return port


def validate_email(email: str) -> str:
    email = email.strip()
    if not _EMAIL_RE.match(email):
        raise ValidationError(f"Invalid email address: {email}")
    return email


def validate_credential(value: str, what: str) -> str:
    if not value:
        raise ValidationError(f"{what} cannot be empty")
    if "\n" in value or "\r" in value:
        raise ValidationError(f"{what} cannot contain line breaks")
    return value
