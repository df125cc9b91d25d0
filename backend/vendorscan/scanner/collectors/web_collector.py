# vendorscan/scanner/collectors/web_collector.py
"""
Web presence collector.

One GET of the vendor's root page, then lightweight heuristics:
    - title          first <title> tag, trimmed
    - contact info   an email-shaped token, or "contact" / "mailto:" anywhere
    - privacy policy an anchor href containing "privacy" (resolved to an
                     absolute URL), or the phrase "privacy policy"
    - terms          "terms of service" / "terms of use" phrases, or an
                     anchor href containing "terms"

These are best-effort hints. The compliance collector does the
authoritative multi-path privacy-policy check.

Profile config options:
    timeout:         float, socket timeout in seconds (default: 10)
    max_body_bytes:  int, body cap (default: 500 KB)
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict
from urllib.parse import urljoin

from vendorscan.config import DEFAULT_TIMEOUT, WEB_MAX_BODY_BYTES
from vendorscan.scanner.base import BaseCollector, ScanTarget
from vendorscan.scanner.errors import UnreachableError
from vendorscan.scanner.results import WebPresenceInfo

logger = logging.getLogger(__name__)

TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+")

PRIVACY_HREF_RE = re.compile(r"""href=["']([^"']*privacy[^"']*)""", re.IGNORECASE)
PRIVACY_PHRASE_RE = re.compile(r"privacy\s*policy", re.IGNORECASE)

TERMS_PATTERNS = (
    re.compile(r"terms\s*(?:of\s*)?(?:service|use)", re.IGNORECASE),
    re.compile(r"terms\s+and\s+conditions", re.IGNORECASE),
    re.compile(r"""href=["']([^"']*terms[^"']*)""", re.IGNORECASE),
)


def resolve_link(base_url: str, href: str) -> str:
    if href.lower().startswith(("http://", "https://")):
        return href
    return urljoin(base_url, href)


class WebCollector(BaseCollector):

    @property
    def name(self) -> str:
        return "web_presence"

    def empty_result(self) -> WebPresenceInfo:
        return WebPresenceInfo()

    async def execute(self, target: ScanTarget, result: WebPresenceInfo, config: Dict[str, Any]) -> None:
        response = await self.fetcher.fetch(
            target.root_url,
            method="GET",
            timeout=config.get("timeout", DEFAULT_TIMEOUT),
            max_body_bytes=config.get("max_body_bytes", WEB_MAX_BODY_BYTES),
        )
        if response is None:
            raise UnreachableError(f"No response from {target.root_url}")

        result.status_code = response.status_code
        result.accessible = response.status_code == 200

        body = response.body
        if not body:
            return

        title_match = TITLE_RE.search(body)
        if title_match:
            result.title = " ".join(title_match.group(1).split()) or None

        email_match = EMAIL_RE.search(body)
        if email_match:
            result.has_contact_info = True
            result.contact_email = email_match.group(0)

        body_lower = body.lower()
        if "contact" in body_lower or "mailto:" in body_lower:
            result.has_contact_info = True

        href_match = PRIVACY_HREF_RE.search(body)
        if href_match:
            result.has_privacy_policy = True
            result.privacy_policy_url = resolve_link(response.url, href_match.group(1))
        elif PRIVACY_PHRASE_RE.search(body):
            result.has_privacy_policy = True

        result.has_terms_of_service = any(p.search(body) for p in TERMS_PATTERNS)
