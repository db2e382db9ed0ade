"""Certbot certificate issuance, renewal and deletion."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from decotv.errors import DecotvError, IssuanceFailedError
from decotv.models import Certificate
from decotv.services.process import TIMEOUT_RETURNCODE, has, output_of, run

# Ordered: the first matching marker decides the reported reason.
_FAILURE_MARKERS: list[tuple[str, tuple[str, ...]]] = [
    ("rate limited", ("ratelimited", "rate limit", "too many certificates", "too many failed authorizations")),
    ("DNS mismatch", ("dns problem", "nxdomain", "no valid ip addresses", "invalid response from", "unauthorized")),
    ("port 80 unreachable", ("connection refused", "timeout during connect", "connection reset", "fetching http")),
    ("CA error", ("urn:ietf:params:acme:error", "service busy", "serverinternal", "the server experienced")),
]


def classify_failure(output: str, returncode: int = 1) -> str:
    """Map certbot output to a short, operator-facing reason."""
    if returncode == TIMEOUT_RETURNCODE:
        return "timed out"
    lowered = output.lower()
    for reason, markers in _FAILURE_MARKERS:
        if any(m in lowered for m in markers):
            return reason
    return "CA error"


def parse_enddate(raw: str) -> datetime | None:
    """Parse ``openssl x509 -enddate`` output (``notAfter=Mar 15 12:00:00 2099 GMT``)."""
    value = raw.strip().partition("=")[2] or raw.strip()
    try:
        parsed = datetime.strptime(value, "%b %d %H:%M:%S %Y %Z")
    except (ValueError, TypeError):
        return None
    return parsed.replace(tzinfo=timezone.utc)


@dataclass
class Certbot:
    """certbot CLI, webroot method only."""

    letsencrypt_dir: Path = Path("/etc/letsencrypt")
    certbot_bin: str = "certbot"
    timeout: float = 300.0

    def is_installed(self) -> bool:
        return has(self.certbot_bin)

    def live_dir(self, domain: str) -> Path:
        return self.letsencrypt_dir / "live" / domain

    def has_cert(self, domain: str) -> bool:
        return (self.live_dir(domain) / "fullchain.pem").exists()

    def issue(self, domain: str, webroot: Path, email: str) -> None:
        """Issue a certificate for *domain* only, via HTTP-01 webroot."""
        cmd = [
            self.certbot_bin, "certonly", "--webroot", "-w", str(webroot),
            "-d", domain, "--cert-name", domain,
        ]
        if email:
            cmd.extend(["--email", email, "--no-eff-email"])
        else:
            cmd.append("--register-unsafely-without-email")
        cmd.extend(["--agree-tos", "--keep-until-expiring", "--non-interactive"])

        result = run(cmd, timeout=self.timeout)
        if result.returncode != 0:
            output = output_of(result)
            reason = classify_failure(output, result.returncode)
            raise IssuanceFailedError(f"Certbot failed for {domain} ({reason}):\n{output}", reason=reason)

    def install(self, domain: str) -> Certificate:
        """Return the issued certificate's paths and expiry."""
        live = self.live_dir(domain)
        cert = Certificate(
            domain=domain,
            cert_path=live / "fullchain.pem",
            key_path=live / "privkey.pem",
        )
        cert.expires_at = self.expiry(cert.cert_path)
        return cert

    def expiry(self, cert_path: Path) -> datetime | None:
        if not cert_path.exists():
            return None
        result = run(["openssl", "x509", "-noout", "-enddate", "-in", str(cert_path)], timeout=30)
        if result.returncode != 0:
            return None
        return parse_enddate(result.stdout)

    def renew(self) -> str:
        """Run certbot renew for all certificates; deploy hooks handle reloads."""
        result = run([self.certbot_bin, "renew", "--no-random-sleep-on-renew"], timeout=self.timeout)
        if result.returncode != 0:
            output = output_of(result)
            reason = classify_failure(output, result.returncode)
            raise DecotvError(f"certbot renew failed ({reason}):\n{output}")
        return result.stdout + result.stderr

    def delete(self, domain: str) -> bool:
        """Delete the certificate lineage (live, archive and renewal conf)."""
        if not (self.letsencrypt_dir / "renewal" / f"{domain}.conf").exists() and not self.has_cert(domain):
            return False
        result = run(
            [self.certbot_bin, "delete", "--cert-name", domain, "--non-interactive"],
            timeout=self.timeout,
        )
        return result.returncode == 0

    def list_certs(self) -> list[tuple[str, datetime | None]]:
        """Return (domain, expiry) for every live certificate."""
        live_root = self.letsencrypt_dir / "live"
        if not live_root.is_dir():
            return []
        certs = []
        for entry in sorted(live_root.iterdir()):
            cert = entry / "cert.pem"
            if entry.is_dir() and cert.exists():
                certs.append((entry.name, self.expiry(cert)))
        return certs
