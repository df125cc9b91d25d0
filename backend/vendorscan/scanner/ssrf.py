# vendorscan/scanner/ssrf.py
"""
SSRF protection for every outbound connection the scanner makes.

The scanner is pointed at arbitrary, untrusted vendor hostnames. A hostile
(or just misconfigured) vendor can publish DNS records pointing at
127.0.0.1, 10.x, or the cloud metadata endpoint, or redirect us there.
Every connection (the first request, each redirect hop, every raw TLS
or HTTP socket) asks the guard first.

Rules:
    - Only http:// and https:// URLs are allowed.
    - Well-known internal hostnames (localhost, metadata names) are rejected
      without resolving them.
    - The host is resolved and EVERY returned address must be public. One
      private A record among public ones is enough to block.
    - IPv4-mapped IPv6 addresses (::ffff:10.0.0.1) are unwrapped and checked
      as IPv4.

A name that does not resolve is reported as unresolved, not blocked:
"unreachable" and "blocked by policy" are different outcomes.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional
from urllib.parse import urlsplit

from vendorscan.scanner.errors import PolicyBlockedError, UnreachableError

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Awaitable[List[str]]]

ALLOWED_SCHEMES = ("http", "https")

BLOCKED_HOSTNAMES = {
    "localhost",
    "localhost.localdomain",
    "ip6-localhost",
    "ip6-loopback",
    "metadata",
    "metadata.google.internal",
    "instance-data",
    "instance-data.ec2.internal",
}

# Networks that should never be reached by an outbound scan request
BLOCKED_NETWORKS = [
    ipaddress.ip_network("0.0.0.0/8"),          # "This" network
    ipaddress.ip_network("10.0.0.0/8"),         # Private (RFC 1918)
    ipaddress.ip_network("100.64.0.0/10"),      # Carrier-grade NAT (incl. Alibaba metadata)
    ipaddress.ip_network("127.0.0.0/8"),        # Loopback
    ipaddress.ip_network("169.254.0.0/16"),     # Link-local / cloud metadata
    ipaddress.ip_network("172.16.0.0/12"),      # Private (RFC 1918)
    ipaddress.ip_network("192.0.0.0/24"),       # IETF protocol assignments
    ipaddress.ip_network("192.0.2.0/24"),       # TEST-NET-1
    ipaddress.ip_network("192.168.0.0/16"),     # Private (RFC 1918)
    ipaddress.ip_network("198.18.0.0/15"),      # Benchmarking
    ipaddress.ip_network("198.51.100.0/24"),    # TEST-NET-2
    ipaddress.ip_network("203.0.113.0/24"),     # TEST-NET-3
    ipaddress.ip_network("224.0.0.0/4"),        # Multicast
    ipaddress.ip_network("240.0.0.0/4"),        # Reserved
    ipaddress.ip_network("255.255.255.255/32"), # Broadcast
    # IPv6
    ipaddress.ip_network("::/128"),             # Unspecified
    ipaddress.ip_network("::1/128"),            # Loopback
    ipaddress.ip_network("fc00::/7"),           # Unique local (incl. fd00:ec2::254)
    ipaddress.ip_network("fe80::/10"),          # Link-local
    ipaddress.ip_network("ff00::/8"),           # Multicast
]


def is_blocked_ip(ip_str: str) -> bool:
    """Check if an IP address falls within blocked/private ranges."""
    try:
        addr = ipaddress.ip_address(ip_str.split("%", 1)[0])
    except ValueError:
        return False

    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped

    return any(addr in network for network in BLOCKED_NETWORKS if addr.version == network.version)


def extract_host(host_or_url: str) -> tuple:
    """
    Split input into (scheme, hostname). Bare hostnames are treated as https.
    Returns ("", "") when no hostname can be found.
    """
    value = (host_or_url or "").strip()
    if "://" not in value:
        value = f"https://{value}"
    try:
        parts = urlsplit(value)
        host = parts.hostname or ""
    except ValueError:
        return "", ""
    return parts.scheme.lower(), host.strip(".").lower()


async def resolve_host(host: str) -> List[str]:
    """Resolve a hostname to its unique addresses without blocking the event loop."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    addresses: List[str] = []
    for *_rest, sockaddr in infos:
        ip = sockaddr[0]
        if ip not in addresses:
            addresses.append(ip)
    return addresses


@dataclass
class ValidationResult:
    valid: bool
    host: str = ""
    reason: Optional[str] = None
    addresses: List[str] = field(default_factory=list)
    resolved: bool = True


class SSRFGuard:
    """
    Validates hosts and URLs before the scanner connects to them.

    resolver: async callable host -> list of IP strings. Defaults to the
              event loop's getaddrinfo; tests inject a stub.
    """

    def __init__(self, resolver: Optional[Resolver] = None):
        self._resolver = resolver or resolve_host

    async def validate(self, host_or_url: str) -> ValidationResult:
        """Return valid, or blocked with a reason. Never raises."""
        scheme, host = extract_host(host_or_url)

        if scheme not in ALLOWED_SCHEMES:
            return ValidationResult(False, host, f"Protocol {scheme or '(none)'} not allowed")
        if not host:
            return ValidationResult(False, host, f"Invalid URL: {host_or_url}")
        if host in BLOCKED_HOSTNAMES or host.endswith(".localhost"):
            return ValidationResult(False, host, f"Host {host} is blocked")

        # Literal IPs are checked without resolution
        try:
            ipaddress.ip_address(host)
            is_literal = True
        except ValueError:
            is_literal = False

        if is_literal:
            if is_blocked_ip(host):
                return ValidationResult(False, host, f"Direct IP {host} is a private address", [host])
            return ValidationResult(True, host, addresses=[host])

        try:
            addresses = await self._resolver(host)
        except (socket.gaierror, socket.herror, OSError, UnicodeError) as e:
            return ValidationResult(
                False, host, f"Failed to resolve hostname {host}: {e}", resolved=False,
            )

        if not addresses:
            return ValidationResult(False, host, f"Failed to resolve hostname {host}", resolved=False)

        for ip in addresses:
            if is_blocked_ip(ip):
                return ValidationResult(
                    False, host, f"Host {host} resolves to private IP {ip}", addresses,
                )

        return ValidationResult(True, host, addresses=addresses)

    async def ensure_allowed(self, host_or_url: str) -> List[str]:
        """
        Raising form used right before a connection is opened.
        Returns the validated addresses.

        Raises:
            PolicyBlockedError: target is internal/private or not http(s).
            UnreachableError:   hostname does not resolve.
        """
        verdict = await self.validate(host_or_url)
        if verdict.valid:
            return verdict.addresses
        if not verdict.resolved:
            raise UnreachableError(verdict.reason)
        logger.warning(f"SSRF blocked: {verdict.reason}")
        raise PolicyBlockedError(verdict.host or host_or_url, verdict.reason)
