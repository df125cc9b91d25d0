# vendorscan/scanner/fetcher.py
"""
Bounded, SSRF-checked HTTP fetcher.

One fetch = one logical page load against an untrusted host:

    - SSRF guard check before the first request
    - redirects followed by an explicit loop with a hop counter; every
      Location is validated by the guard before the next hop
    - body streamed and cut off at max_body_bytes (the response is closed,
      so the rest is never downloaded)
    - per-operation socket timeout via httpx.Timeout, plus an optional hard
      ceiling for the whole call

Expected failures (timeouts, refused connections, handshake failures,
protocol errors, too many redirects) return None: this is best-effort
probing of a third party and callers treat "no page" as a negative signal.
A guard rejection is different and raises PolicyBlockedError so callers can
report "blocked by policy" instead of "unreachable".
"""

from __future__ import annotations

import asyncio
import logging
import zlib
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import urljoin

import httpx

from vendorscan.config import (
    ACCEPT_HTML,
    DEFAULT_TIMEOUT,
    MAX_REDIRECTS,
    USER_AGENT,
    WEB_MAX_BODY_BYTES,
)
from vendorscan.scanner.errors import ProtocolError, UnreachableError
from vendorscan.scanner.ssrf import SSRFGuard

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


@dataclass
class FetchResult:
    """Outcome of one fetch, including any redirects that were followed."""
    status_code: int
    url: str
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    truncated: bool = False
    redirects: int = 0

    @property
    def is_redirect(self) -> bool:
        return self.status_code in REDIRECT_STATUSES and bool(self.headers.get("location"))


def _flatten_headers(headers: httpx.Headers) -> Dict[str, str]:
    """Lowercased header map; repeated headers are joined with ", "."""
    return {key.lower(): ", ".join(headers.get_list(key)) for key in headers.keys()}


def _bounded_decoder(content_encoding: str):
    """
    zlib decompressor for the response, or None for an identity body.

    Bodies are read raw so decompression can be bounded by max_length;
    httpx's own decoders inflate each chunk in full.
    """
    encoding = content_encoding.strip().lower()
    if encoding in ("", "identity"):
        return None
    if encoding in ("gzip", "x-gzip", "deflate"):
        # wbits 32 + MAX_WBITS accepts both gzip and zlib headers
        return zlib.decompressobj(32 + zlib.MAX_WBITS)
    raise ProtocolError(f"Unsupported Content-Encoding: {content_encoding}")


def _decode_body(raw: bytes, charset: Optional[str]) -> str:
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


class PageFetcher:
    """
    Performs single bounded HTTP requests for the collectors.

    guard:     SSRFGuard consulted before every hop.
    transport: optional httpx async transport (tests pass httpx.MockTransport).
    verify:    TLS verification for HTTPS fetches.
    """

    def __init__(
        self,
        guard: Optional[SSRFGuard] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        verify: bool = True,
        user_agent: str = USER_AGENT,
    ):
        self.guard = guard or SSRFGuard()
        self._transport = transport
        self._verify = verify
        self._user_agent = user_agent

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        timeout: float = DEFAULT_TIMEOUT,
        max_body_bytes: int = WEB_MAX_BODY_BYTES,
        max_redirects: int = MAX_REDIRECTS,
        follow_redirects: bool = True,
        total_timeout: Optional[float] = None,
    ) -> Optional[FetchResult]:
        """
        Fetch url and return a FetchResult, or None if the target could not
        be loaded. Raises PolicyBlockedError if the guard rejects any hop.
        """
        try:
            coro = self._fetch(url, method, timeout, max_body_bytes, max_redirects, follow_redirects)
            if total_timeout is not None:
                return await asyncio.wait_for(coro, timeout=total_timeout)
            return await coro
        except asyncio.TimeoutError:
            logger.debug(f"Fetch {method} {url} exceeded {total_timeout}s ceiling")
        except UnreachableError as e:
            logger.debug(f"Fetch {method} {url} unreachable: {e}")
        except ProtocolError as e:
            logger.debug(f"Fetch {method} {url} protocol error: {e}")
        return None

    async def fetch_text(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_body_bytes: int = WEB_MAX_BODY_BYTES,
        total_timeout: Optional[float] = None,
    ) -> Optional[str]:
        """GET url and return the body of a 200 response, else None."""
        result = await self.fetch(
            url,
            method="GET",
            timeout=timeout,
            max_body_bytes=max_body_bytes,
            total_timeout=total_timeout,
        )
        if result is None or result.status_code != 200:
            return None
        return result.body

    async def _fetch(
        self,
        url: str,
        method: str,
        timeout: float,
        max_body_bytes: int,
        max_redirects: int,
        follow_redirects: bool,
    ) -> Optional[FetchResult]:
        current_url = url
        hops = 0

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
            verify=self._verify,
            headers={
                "User-Agent": self._user_agent,
                "Accept": ACCEPT_HTML,
                "Accept-Encoding": "gzip, deflate",
            },
        ) as client:
            while True:
                await self.guard.ensure_allowed(current_url)

                result = await self._request_once(client, method, current_url, max_body_bytes)
                result.redirects = hops

                if not (follow_redirects and result.is_redirect):
                    return result

                hops += 1
                if hops > max_redirects:
                    logger.debug(f"Too many redirects ({hops}) starting from {url}")
                    return None

                next_url = urljoin(current_url, result.headers["location"])
                logger.debug(f"Redirect {current_url} -> {next_url}")
                current_url = next_url

    async def _request_once(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        max_body_bytes: int,
    ) -> FetchResult:
        """Send one request, stream at most max_body_bytes of the body."""
        chunks = []
        received = 0
        truncated = False

        try:
            async with client.stream(method, url) as response:
                if method.upper() != "HEAD":
                    decoder = _bounded_decoder(response.headers.get("content-encoding", ""))
                    async for raw in response.aiter_raw():
                        remaining = max_body_bytes - received
                        if remaining <= 0:
                            truncated = True
                            break
                        # max_length keeps a compressed chunk from inflating past the cap
                        chunk = decoder.decompress(raw, remaining) if decoder else raw
                        if len(chunk) >= remaining:
                            chunks.append(chunk[:remaining])
                            received += remaining
                            truncated = True
                            break
                        chunks.append(chunk)
                        received += len(chunk)

                return FetchResult(
                    status_code=response.status_code,
                    url=str(response.url),
                    body=_decode_body(b"".join(chunks), response.charset_encoding),
                    headers=_flatten_headers(response.headers),
                    truncated=truncated,
                )
        except (httpx.TimeoutException, httpx.ConnectError, httpx.NetworkError) as e:
            raise UnreachableError(f"{url}: {type(e).__name__}: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise ProtocolError(f"{url}: {type(e).__name__}: {e}") from e
        except zlib.error as e:
            raise ProtocolError(f"{url}: bad compressed body: {e}") from e
