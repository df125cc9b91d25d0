# vendorscan/scanner/collectors/ssl_collector.py
"""
TLS inspection collector.

Opens a raw, non-blocking TLS connection to the vendor host, reads the leaf
certificate and derives a coarse, reproducible grade. Separately checks
whether plain HTTP on port 80 redirects to HTTPS.

What this collector reports (TLSInfo):
    enabled                  a TLS handshake completed
    issuer                   issuer CN, falling back to O, then "Unknown"
    expiry                   leaf notAfter (UTC)
    days_until_expiry        floor((notAfter - now) / 1 day), signed
    grade                    A / C / F / N/A, see compute_grade()
    http_redirects_to_https  http://host/ answers 3xx → https://...

What this collector does NOT do:
    - Protocol / cipher enumeration (not an SSL Labs audit)
    - Hostname-match or chain analysis beyond "did it verify"

Certificate validation:
    Chain validation is ON by default. ALLOW_INSECURE_TLS=true (or the
    allow_insecure=True argument) lets a host whose chain fails verification
    still be inspected: the leaf is read over an unverified second handshake and
    the result is graded as not authorized (F). A warning is logged whenever
    the override is active.

Profile config options:
    timeout:  float, connect + handshake timeout in seconds (default: 10)
"""

from __future__ import annotations

import asyncio
import logging
import math
import ssl
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from cryptography import x509
from cryptography.x509.oid import NameOID

from vendorscan.config import DEFAULT_TIMEOUT, MAX_REDIRECTS, allow_insecure_tls
from vendorscan.scanner.base import BaseCollector, ScanTarget, now_utc
from vendorscan.scanner.errors import (
    CertificateUntrustedError,
    PolicyBlockedError,
    ProtocolError,
    ScanError,
    UnreachableError,
)
from vendorscan.scanner.fetcher import PageFetcher
from vendorscan.scanner.results import GRADE_A, GRADE_C, GRADE_F, GRADE_NA, TLSInfo
from vendorscan.scanner.ssrf import SSRFGuard

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 30
SECONDS_PER_DAY = 86400


def compute_grade(authorized: bool, days_until_expiry: int) -> str:
    """
    Coarse certificate grade.

        not authorized           → F
        expired (days < 0)       → F
        0 <= days < 30           → C   (expiring soon)
        days >= 30               → A
    """
    if not authorized:
        return GRADE_F
    if days_until_expiry < 0:
        return GRADE_F
    if days_until_expiry < EXPIRY_WARNING_DAYS:
        return GRADE_C
    return GRADE_A


def days_until(expiry: datetime, now: Optional[datetime] = None) -> int:
    """Whole days until expiry, floored (an hour past expiry is -1)."""
    now = now or now_utc()
    return math.floor((expiry - now).total_seconds() / SECONDS_PER_DAY)


@dataclass
class LeafCertificate:
    """The parts of the end-entity certificate the grade depends on."""
    issuer: str
    not_after: datetime
    authorized: bool = True


def parse_leaf(cert_der: bytes, authorized: bool = True) -> LeafCertificate:
    """Decode a DER leaf certificate; raises ProtocolError if it can't be parsed."""
    try:
        cert = x509.load_der_x509_certificate(cert_der)
    except ValueError as e:
        raise ProtocolError(f"Could not parse certificate: {e}") from e

    issuer = "Unknown"
    for oid in (NameOID.COMMON_NAME, NameOID.ORGANIZATION_NAME):
        attrs = cert.issuer.get_attributes_for_oid(oid)
        if attrs and attrs[0].value:
            issuer = str(attrs[0].value)
            break

    return LeafCertificate(
        issuer=issuer,
        not_after=cert.not_valid_after_utc,
        authorized=authorized,
    )


class SSLCollector(BaseCollector):
    """
    Checks the TLS certificate and HTTP→HTTPS redirect of a vendor host.

    Every raw socket is preceded by an SSRF guard check, and the socket is
    opened to the address the guard validated (SNI still carries the host
    name), so DNS can't be swapped between check and connect.
    """

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        guard: Optional[SSRFGuard] = None,
        allow_insecure: Optional[bool] = None,
    ):
        super().__init__(fetcher=fetcher, guard=guard)
        self.allow_insecure_tls = allow_insecure_tls() if allow_insecure is None else allow_insecure
        if self.allow_insecure_tls:
            logger.warning(
                "TLS certificate validation is disabled (ALLOW_INSECURE_TLS=true) - "
                "certificates that fail verification will still be inspected"
            )

    @property
    def name(self) -> str:
        return "ssl"

    def empty_result(self) -> TLSInfo:
        return TLSInfo()

    async def execute(self, target: ScanTarget, result: TLSInfo, config: Dict[str, Any]) -> None:
        timeout = config.get("timeout", DEFAULT_TIMEOUT)
        port = target.port if target.scheme == "https" and target.port else 443

        tls_info = await self.inspect(target.host, port, timeout=timeout)
        result.enabled = tls_info.enabled
        result.issuer = tls_info.issuer
        result.expiry = tls_info.expiry
        result.days_until_expiry = tls_info.days_until_expiry
        result.grade = tls_info.grade

        result.http_redirects_to_https = await self.check_http_redirect(target.host, timeout=timeout)

    async def inspect(self, host: str, port: int = 443, timeout: float = DEFAULT_TIMEOUT) -> TLSInfo:
        """
        Handshake with host:port and grade the leaf certificate.
        Never raises for network or TLS failures; returns enabled=False instead.
        """
        result = TLSInfo()

        try:
            addresses = await self.guard.ensure_allowed(ScanTarget("https", host, port).base_url)
        except PolicyBlockedError as e:
            logger.warning(f"SSRF protection blocked TLS check for {host}: {e.reason}")
            return result
        except UnreachableError as e:
            logger.debug(f"TLS check skipped for {host}: {e}")
            return result

        leaf = await self._read_leaf(host, addresses, port, timeout)
        if leaf is None:
            return result

        days = days_until(leaf.not_after)
        result.enabled = True
        result.issuer = leaf.issuer
        result.expiry = leaf.not_after
        result.days_until_expiry = days
        result.grade = compute_grade(leaf.authorized, days)
        return result

    async def _read_leaf(
        self, host: str, addresses: List[str], port: int, timeout: float,
    ) -> Optional[LeafCertificate]:
        connect_ip = addresses[0] if addresses else host
        try:
            return await self._handshake(host, connect_ip, port, timeout, verify=True)
        except CertificateUntrustedError as e:
            if not self.allow_insecure_tls:
                logger.debug(f"TLS verification failed for {host}: {e}")
                return None
            logger.warning(f"Inspecting untrusted certificate for {host} (insecure TLS override): {e}")
        except ScanError as e:
            logger.debug(f"TLS error for {host}: {e}")
            return None

        try:
            return await self._handshake(host, connect_ip, port, timeout, verify=False)
        except ScanError as e:
            logger.debug(f"Unverified TLS handshake failed for {host}: {e}")
            return None

    async def _handshake(
        self, host: str, connect_ip: str, port: int, timeout: float, verify: bool,
    ) -> LeafCertificate:
        """
        One TLS handshake. Returns the parsed leaf certificate.

        Raises:
            CertificateUntrustedError: chain verification failed (verify=True).
            UnreachableError:          refused / timed out.
            ProtocolError:             any other TLS failure.
        """
        context = ssl.create_default_context()
        if not verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(
                    connect_ip, port, ssl=context, server_hostname=host,
                    ssl_handshake_timeout=timeout,
                ),
                timeout=timeout,
            )
        except ssl.SSLCertVerificationError as e:
            raise CertificateUntrustedError(f"{host}:{port}: {e.verify_message or e}") from e
        except ssl.SSLError as e:
            raise ProtocolError(f"{host}:{port}: {e}") from e
        except asyncio.TimeoutError as e:
            raise UnreachableError(f"Timeout connecting to {host}:{port}") from e
        except OSError as e:
            raise UnreachableError(f"Connection failed to {host}:{port}: {e}") from e

        try:
            ssl_object = writer.get_extra_info("ssl_object")
            cert_der = ssl_object.getpeercert(binary_form=True) if ssl_object else None
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ssl.SSLError, OSError) as e:
                logger.debug(f"TLS close for {host}:{port} not clean: {e}")

        if not cert_der:
            raise ProtocolError(f"{host}:{port} presented no certificate")

        return parse_leaf(cert_der, authorized=verify)

    async def check_http_redirect(self, host: str, timeout: float = DEFAULT_TIMEOUT) -> bool:
        """
        HEAD http://host/ and report whether it redirects to HTTPS.

        Every 3xx counts as a hop, the final one to https:// included, so at
        most MAX_REDIRECTS responses are inspected; http→http hops (e.g.
        apex → www) are followed by hand and a longer chain counts as no
        redirect.
        """
        url = ScanTarget("http", host).root_url

        for _hop in range(MAX_REDIRECTS):
            try:
                response = await self.fetcher.fetch(
                    url, method="HEAD", timeout=timeout, follow_redirects=False,
                )
            except PolicyBlockedError as e:
                logger.warning(f"SSRF protection blocked HTTP redirect check for {host}: {e.reason}")
                return False

            if response is None or not response.is_redirect:
                return False

            location = response.headers["location"]
            if location.startswith("https://"):
                return True

            url = urljoin(url, location)
            if not url.startswith("http://"):
                return False

        logger.debug(f"HTTP redirect chain for {host} exceeded {MAX_REDIRECTS} hops")
        return False
