"""Host network probes: port ownership, public IP and DNS pre-flight checks."""

from __future__ import annotations

import re
import socket
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from enum import Enum

import httpx

from decotv.constants import PUBLIC_IP_URL
from decotv.errors import DependencyMissingError
from decotv.services.process import has, run

PROXY_PROCESSES = frozenset({"nginx"})

_USERS_RE = re.compile(r'\("([^"]+)",pid=(\d+)')


class PortOwner(str, Enum):
    PROXY = "proxy"
    OTHER = "other"
    FREE = "free"


@dataclass
class PortStatus:
    port: int
    owner: PortOwner
    processes: list[str] = field(default_factory=list)

    def describe(self) -> str:
        if self.owner == PortOwner.FREE:
            return f"port {self.port} is free"
        names = ", ".join(sorted(set(self.processes))) or "unknown process"
        return f"port {self.port} is held by {names}"


def parse_ss_output(raw: str, port: int) -> PortStatus:
    """Classify ``ss -ltnpH`` output for *port*."""
    processes: list[str] = []
    listening = False
    for line in raw.strip().splitlines():
        cols = line.split()
        if len(cols) < 4:
            continue
        local = cols[3]
        if not local.endswith(f":{port}"):
            continue
        listening = True
        processes.extend(name for name, _pid in _USERS_RE.findall(line))
    if not listening:
        return PortStatus(port=port, owner=PortOwner.FREE)
    if processes and all(p in PROXY_PROCESSES for p in processes):
        return PortStatus(port=port, owner=PortOwner.PROXY, processes=processes)
    return PortStatus(port=port, owner=PortOwner.OTHER, processes=processes)


def port_status(port: int, timeout: float = 10.0) -> PortStatus:
    """Report who listens on TCP *port* on this host."""
    if not has("ss"):
        raise DependencyMissingError("'ss' (iproute2) is required to inspect listening ports")
    result = run(["ss", "-ltnpH", f"sport = :{port}"], timeout=timeout)
    return parse_ss_output(result.stdout, port)


def is_listening(port: int, host: str = "127.0.0.1", timeout: float = 2.0) -> bool:
    """Best-effort check that something accepts connections on *port*."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def public_ip(timeout: float = 5.0) -> str | None:
    """Return this host's public IPv4 address, or None when it can't be determined."""
    try:
        resp = httpx.get(PUBLIC_IP_URL, timeout=timeout)
        resp.raise_for_status()
    except httpx.HTTPError:
        return None
    value = resp.text.strip()
    return value or None


def resolve(domain: str, timeout: float = 5.0) -> list[str]:
    """Resolve *domain* to IPv4 addresses; empty on failure or timeout."""
    pool = ThreadPoolExecutor(max_workers=1)
    future = pool.submit(socket.getaddrinfo, domain, None, socket.AF_INET, socket.SOCK_STREAM)
    try:
        infos = future.result(timeout=timeout)
    except (socket.gaierror, FutureTimeout, OSError):
        return []
    finally:
        pool.shutdown(wait=False)
    return sorted({info[4][0] for info in infos})


@dataclass
class DnsCheck:
    domain: str
    public_ip: str | None
    addresses: list[str]

    @property
    def matches(self) -> bool:
        return self.public_ip is not None and self.public_ip in self.addresses

    @property
    def conclusive(self) -> bool:
        return self.public_ip is not None and bool(self.addresses)

    def describe(self) -> str:
        if self.public_ip is None:
            return "could not determine this host's public IP"
        if not self.addresses:
            return f"{self.domain} does not resolve"
        if self.matches:
            return f"{self.domain} resolves to this host ({self.public_ip})"
        return (
            f"DNS mismatch: {self.domain} resolves to {', '.join(self.addresses)}, "
            f"this host is {self.public_ip}"
        )


def check_dns(domain: str, timeout: float = 5.0) -> DnsCheck:
    """Advisory pre-flight: does *domain* point at this host?"""
    return DnsCheck(domain=domain, public_ip=public_ip(timeout), addresses=resolve(domain, timeout))
