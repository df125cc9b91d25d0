# vendorscan/scanner/collectors/header_collector.py
"""
HTTP security headers collector.

Issues one HEAD request to the vendor root and maps the recognized security
headers. Header names are matched case-insensitively; repeated headers are
joined with ", ".

Baseline headers (absence is recorded in missing_headers, in this order):
    Strict-Transport-Security
    Content-Security-Policy
    X-Frame-Options
    X-Content-Type-Options

Advisory headers, recorded if present and never flagged when absent:
    X-XSS-Protection
    Referrer-Policy
    Permissions-Policy

If the host can't be reached there is no evidence either way, so both the
header map and missing_headers stay empty.

Profile config options:
    timeout:         float, socket timeout in seconds (default: 15)
    max_body_bytes:  int, body cap (default: 500 KB; HEAD has no body)
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from vendorscan.config import HEADER_TIMEOUT, WEB_MAX_BODY_BYTES
from vendorscan.scanner.base import BaseCollector, ScanTarget
from vendorscan.scanner.errors import UnreachableError
from vendorscan.scanner.results import HeadersResult
from vendorscan.scanner.templates import SECURITY_HEADERS

logger = logging.getLogger(__name__)


class HeaderCollector(BaseCollector):

    @property
    def name(self) -> str:
        return "headers"

    def empty_result(self) -> HeadersResult:
        return HeadersResult()

    async def execute(self, target: ScanTarget, result: HeadersResult, config: Dict[str, Any]) -> None:
        response = await self.fetcher.fetch(
            target.root_url,
            method="HEAD",
            timeout=config.get("timeout", HEADER_TIMEOUT),
            max_body_bytes=config.get("max_body_bytes", WEB_MAX_BODY_BYTES),
        )
        if response is None:
            raise UnreachableError(f"No response from {target.root_url}")

        for spec in SECURITY_HEADERS:
            value = response.headers.get(spec.canonical.lower())
            if value:
                setattr(result.headers, spec.field, value)
            elif spec.baseline:
                result.missing_headers.append(spec.canonical)
