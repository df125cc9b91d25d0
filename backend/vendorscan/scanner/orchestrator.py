# vendorscan/scanner/orchestrator.py
"""
Scan Orchestrator: runs every collector against one vendor target.

    1. Build one SSRF guard + fetcher shared by all collectors (neither keeps
       state between calls, so sharing them is safe)
    2. Run all collectors concurrently; they share no mutable state and
       need no ordering
    3. Bound the whole scan by a global ceiling (90s)
    4. Merge the four results into a SecurityScanResult

Persistence, risk scoring and the REST surface belong to the calling
service; this module only produces the in-memory result.

Usage from a synchronous service layer:
    from vendorscan.scanner import run_scan

    result = run_scan("vendor.example")
    payload = result.as_dict()
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from vendorscan.config import SCAN_TIMEOUT
from vendorscan.scanner.base import BaseCollector, now_utc
from vendorscan.scanner.collectors import ALL_COLLECTORS
from vendorscan.scanner.errors import ScanTimeoutError
from vendorscan.scanner.fetcher import PageFetcher
from vendorscan.scanner.results import SecurityScanResult
from vendorscan.scanner.ssrf import SSRFGuard

logger = logging.getLogger(__name__)


class SecurityScanner:
    """
    Runs the SSL, headers, web presence and compliance collectors in parallel.

    Args:
        fetcher:         shared PageFetcher (tests pass one with a stub transport)
        guard:           shared SSRFGuard (tests pass one with a stub resolver)
        allow_insecure:  override for the TLS validation toggle; None reads
                         ALLOW_INSECURE_TLS from the environment
        timeout:         global ceiling for one scan, in seconds
    """

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        guard: Optional[SSRFGuard] = None,
        allow_insecure: Optional[bool] = None,
        timeout: float = SCAN_TIMEOUT,
    ):
        guard = guard or (fetcher.guard if fetcher else SSRFGuard())
        fetcher = fetcher or PageFetcher(guard=guard)
        self.timeout = timeout

        self.collectors: Dict[str, BaseCollector] = {}
        for name, collector_cls in ALL_COLLECTORS.items():
            extra = {"allow_insecure": allow_insecure} if name == "ssl" else {}
            self.collectors[name] = collector_cls(fetcher=fetcher, guard=guard, **extra)

    async def scan(
        self,
        target_url: str,
        config: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> SecurityScanResult:
        """
        Scan one target. `config` maps collector name → collector config,
        e.g. {"compliance": {"path_deadline": 10}}.

        Raises ScanTimeoutError if the collectors together exceed the ceiling.
        """
        config = config or {}
        scanned_at = now_utc()
        start = time.monotonic()

        logger.info(f"Scanning target: {target_url}")

        names = list(self.collectors)
        try:
            outputs = await asyncio.wait_for(
                asyncio.gather(*(
                    self.collectors[name].collect(target_url, config.get(name))
                    for name in names
                )),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ScanTimeoutError(
                f"Security scan of {target_url} timed out after {self.timeout} seconds"
            ) from e

        results = dict(zip(names, outputs))
        duration = round(time.monotonic() - start, 2)

        logger.info(f"Scan of {target_url} completed in {duration}s")

        return SecurityScanResult(
            target_url=target_url,
            scanned_at=scanned_at,
            ssl=results["ssl"],
            headers=results["headers"],
            web_presence=results["web_presence"],
            compliance=results["compliance"],
            duration_seconds=duration,
        )


def run_scan(
    target_url: str,
    config: Optional[Dict[str, Dict[str, Any]]] = None,
    scanner: Optional[SecurityScanner] = None,
) -> SecurityScanResult:
    """Synchronous entry point for callers that are not running an event loop."""
    scanner = scanner or SecurityScanner()
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(scanner.scan(target_url, config))
    finally:
        loop.close()
