# vendorscan/scanner/collectors/compliance_collector.py
"""
Compliance indicator collector.

Looks for public evidence of a vendor's security/compliance posture:
trust portal, certifications (SOC 2, ISO 27001, ...), security whitepaper,
privacy policy and bug-bounty program. No credentials and no crawling, only
the root page plus a small fixed list of candidate paths.

Phases:
    1. Root page      certification / whitepaper / bug-bounty mentions
    2. Path fan-out   every trust-portal and privacy-policy candidate path is
                      fetched concurrently, and the whole batch races ONE
                      shared deadline (25s). Whatever finished by then is
                      classified; the rest is abandoned, not cancelled.
    3. Classification completed results, in declared candidate order:
                      bodies under 500 chars are ignored (placeholder pages);
                      the first trust page with trust keywords becomes the
                      trust portal (and is analyzed for certifications and a
                      SaaS provider); the first privacy page with privacy
                      keywords becomes the privacy policy. First match wins,
                      but the loop never exits early.
    4. Bug bounty     security.txt / bug-bounty paths, sequentially; the first
                      body over 100 chars wins.

Failure semantics:
    Any exception is caught once (catch_all), logged at warning level, and
    the partial result is returned. This collector must never fail a scan.

Profile config options:
    timeout:         float, per-fetch socket timeout (default: 3)
    fetch_ceiling:   float, hard ceiling per fetch (default: 10)
    path_deadline:   float, shared deadline for the path fan-out (default: 25)
    max_body_bytes:  int, body cap (default: 300 KB)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from vendorscan.config import (
    COMPLIANCE_FETCH_CEILING,
    COMPLIANCE_MAX_BODY_BYTES,
    COMPLIANCE_PATH_DEADLINE,
    COMPLIANCE_SOCKET_TIMEOUT,
)
from vendorscan.scanner.base import BaseCollector, ScanTarget
from vendorscan.scanner.errors import PolicyBlockedError
from vendorscan.scanner.results import ComplianceIndicators
from vendorscan.scanner.templates import (
    BUG_BOUNTY_PATHS,
    BUG_BOUNTY_PHRASES,
    MIN_BUG_BOUNTY_LENGTH,
    MIN_PAGE_LENGTH,
    PATH_KIND_PRIVACY,
    PATH_KIND_TRUST,
    PRIVACY_KEYWORDS,
    TRUST_KEYWORDS,
    WHITEPAPER_PHRASES,
    WHITEPAPER_RE,
    candidate_paths,
    detect_trust_provider,
    match_certifications,
)

logger = logging.getLogger(__name__)

# Probes still running when the path deadline fires. The event loop only
# keeps weak references to tasks, so abandoned ones are parked here until
# they finish on their own socket timeouts.
_abandoned_probes: Set[asyncio.Task] = set()


@dataclass
class PathProbe:
    path: str
    kind: str               # "trust" | "privacy"
    url: str
    content: Optional[str] = None


def analyze_page(content: str, result: ComplianceIndicators) -> None:
    """Apply certification, whitepaper and bug-bounty heuristics to one page."""
    for cert in match_certifications(content):
        if cert.flag:
            setattr(result, cert.flag, True)
        # Never downgrade Type II evidence from another page
        if cert.soc2_type and result.soc2_type != "Type II":
            result.soc2_type = cert.soc2_type
        result.add_certification(cert.label)

    content_lower = content.lower()

    if any(p in content_lower for p in WHITEPAPER_PHRASES) or WHITEPAPER_RE.search(content):
        result.has_security_whitepaper = True

    if any(p in content_lower for p in BUG_BOUNTY_PHRASES):
        result.has_bug_bounty = True


class ComplianceCollector(BaseCollector):

    catch_all = True

    @property
    def name(self) -> str:
        return "compliance"

    def empty_result(self) -> ComplianceIndicators:
        return ComplianceIndicators()

    async def execute(self, target: ScanTarget, result: ComplianceIndicators, config: Dict[str, Any]) -> None:
        fetch_opts = {
            "timeout": config.get("timeout", COMPLIANCE_SOCKET_TIMEOUT),
            "max_body_bytes": config.get("max_body_bytes", COMPLIANCE_MAX_BODY_BYTES),
            "total_timeout": config.get("fetch_ceiling", COMPLIANCE_FETCH_CEILING),
        }
        deadline = config.get("path_deadline", COMPLIANCE_PATH_DEADLINE)

        # A blocked vendor host ends the scan here; blocks on redirect targets
        # only cost the page that redirected.
        await self.guard.ensure_allowed(target.base_url)

        # --- Phase 1: root page ---
        try:
            root_content = await self.fetcher.fetch_text(target.root_url, **fetch_opts)
        except PolicyBlockedError as e:
            logger.warning(f"Root page of {target.host} blocked by policy: {e.reason}")
            root_content = None
        if root_content:
            analyze_page(root_content, result)

        # --- Phases 2 + 3: trust / privacy paths ---
        probes = await self._probe_paths(target, deadline, fetch_opts)
        self._classify(probes, result)

        # --- Phase 4: bug bounty ---
        await self._check_bug_bounty(target, result, fetch_opts)

    # -------------------------------------------------------------------
    # Path fan-out
    # -------------------------------------------------------------------

    async def _probe_path(self, target: ScanTarget, path: str, kind: str, fetch_opts: Dict[str, Any]) -> PathProbe:
        probe = PathProbe(path=path, kind=kind, url=target.url_for(path))
        try:
            probe.content = await self.fetcher.fetch_text(probe.url, **fetch_opts)
        except PolicyBlockedError as e:
            logger.debug(f"Path {path} blocked by policy: {e.reason}")
            return probe

        logger.debug(f"Path {path} returned {len(probe.content) if probe.content else 0} chars")
        return probe

    async def _probe_paths(
        self, target: ScanTarget, deadline: float, fetch_opts: Dict[str, Any],
    ) -> List[Optional[PathProbe]]:
        """
        Fetch every candidate path concurrently under one shared deadline.

        Returns one entry per candidate, in declared order; None where the
        probe had not finished when the deadline fired.
        """
        candidates = candidate_paths()
        tasks = [
            asyncio.ensure_future(self._probe_path(target, path, kind, fetch_opts))
            for path, kind in candidates
        ]

        done, pending = await asyncio.wait(tasks, timeout=deadline)

        if pending:
            logger.warning(
                f"Path check timeout for {target.host} - "
                f"{len(pending)} of {len(tasks)} paths not checked"
            )
            for task in pending:
                _abandoned_probes.add(task)
                task.add_done_callback(_abandoned_probes.discard)

        probes: List[Optional[PathProbe]] = []
        for (path, _kind), task in zip(candidates, tasks):
            if task not in done:
                probes.append(None)
                continue
            error = task.exception()
            if error is not None:
                logger.debug(f"Path {path} error: {error}")
                probes.append(None)
                continue
            probes.append(task.result())
        return probes

    def _classify(self, probes: List[Optional[PathProbe]], result: ComplianceIndicators) -> None:
        for probe in probes:
            if probe is None:
                continue
            if not probe.content or len(probe.content) < MIN_PAGE_LENGTH:
                logger.debug(f"Path {probe.path} skipped (content too short)")
                continue

            content_lower = probe.content.lower()

            if probe.kind == PATH_KIND_TRUST and not result.has_trust_portal:
                if any(k in content_lower for k in TRUST_KEYWORDS):
                    result.has_trust_portal = True
                    result.trust_portal_url = probe.url
                    logger.info(f"Trust portal detected at {probe.url}")
                    analyze_page(probe.content, result)
                    result.trust_portal_provider = detect_trust_provider(probe.content)

            if probe.kind == PATH_KIND_PRIVACY and not result.has_privacy_policy:
                if any(k in content_lower for k in PRIVACY_KEYWORDS):
                    result.has_privacy_policy = True
                    result.privacy_policy_url = probe.url
                    logger.info(f"Privacy policy detected at {probe.url}")

    # -------------------------------------------------------------------
    # Bug bounty
    # -------------------------------------------------------------------

    async def _check_bug_bounty(
        self, target: ScanTarget, result: ComplianceIndicators, fetch_opts: Dict[str, Any],
    ) -> None:
        for path in BUG_BOUNTY_PATHS:
            url = target.url_for(path)
            try:
                content = await self.fetcher.fetch_text(url, **fetch_opts)
            except PolicyBlockedError as e:
                logger.debug(f"Bug bounty path {path} blocked by policy: {e.reason}")
                continue

            if content and len(content) > MIN_BUG_BOUNTY_LENGTH:
                result.has_bug_bounty = True
                result.bug_bounty_url = url
                logger.info(f"Bug bounty / disclosure policy found at {url}")
                break
