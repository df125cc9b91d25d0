# vendorscan/scanner/base.py
"""
Base classes for the posture scanner collectors.

Architecture:
    raw input ──► ScanTarget ──► Collector.execute() ──► result structure

BaseCollector: Gathers one family of facts (TLS, headers, web presence,
               compliance) about a single vendor target. Collectors NEVER
               classify severity; they only report what was observed.

The base class owns the envelope every collector shares:
    - parsing the raw target (bare hostname or URL, https by default)
    - creating the empty (default) result
    - catching expected scan errors, logging a warning and returning
      whatever was collected before the failure
    - timing

A collector therefore never fails the wider vendor-risk workflow: a dead,
hostile or policy-blocked vendor host yields weaker signals, not an error.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlsplit

from vendorscan.scanner.errors import InvalidTargetError, PolicyBlockedError, ScanError
from vendorscan.scanner.fetcher import PageFetcher
from vendorscan.scanner.ssrf import ALLOWED_SCHEMES, SSRFGuard

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Target
# ---------------------------------------------------------------------------

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class ScanTarget:
    """
    Normalized base URL of a vendor, derived from raw user input.

    Examples:
        "example.com"                 → https://example.com
        "http://Example.com:8080/x"   → http://example.com:8080
    """
    scheme: str
    host: str
    port: Optional[int] = None

    @classmethod
    def parse(cls, raw: str) -> "ScanTarget":
        value = (raw or "").strip()
        if not value:
            raise InvalidTargetError("Target is required")
        if "://" not in value:
            value = f"https://{value}"

        try:
            parts = urlsplit(value)
            port = parts.port
        except ValueError as e:
            raise InvalidTargetError(f"Invalid target {raw!r}: {e}") from e

        scheme = parts.scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            raise InvalidTargetError(f"Unsupported scheme {scheme!r} in {raw!r}")

        host = (parts.hostname or "").strip(".")
        if not host:
            raise InvalidTargetError(f"No hostname in {raw!r}")

        return cls(scheme=scheme, host=host, port=port)

    @property
    def effective_port(self) -> int:
        return self.port or DEFAULT_PORTS[self.scheme]

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}" if self.port else host

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.netloc}"

    @property
    def root_url(self) -> str:
        return f"{self.base_url}/"

    def url_for(self, path: str) -> str:
        """Resolve a path (e.g. "/trust") against the base URL."""
        return urljoin(self.root_url, path)


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BaseCollector(ABC):
    """
    Abstract base for posture collectors.

    To create a new collector:
        1. Subclass BaseCollector
        2. Set the `name` property (e.g., "ssl", "headers")
        3. Implement `empty_result()` returning the default structure
        4. Implement `async execute(target, result, config)` filling `result`
           in place, so partial progress survives a later failure

    The base class handles automatically:
        - Target parsing (InvalidTargetError → default result)
        - Error catching (ScanError subclasses are logged, never raised)
        - Timing (debug log on completion)

    Set `catch_all = True` on collectors that must survive any exception,
    not just expected scan errors.
    """

    catch_all: bool = False

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        guard: Optional[SSRFGuard] = None,
    ):
        self.guard = guard or (fetcher.guard if fetcher else SSRFGuard())
        self.fetcher = fetcher or PageFetcher(guard=self.guard)

    @property
    @abstractmethod
    def name(self) -> str:
        """Collector identifier used in logs and the orchestrator."""
        ...

    @abstractmethod
    def empty_result(self) -> Any:
        """Default result: every flag false, every optional absent."""
        ...

    @abstractmethod
    async def execute(self, target: ScanTarget, result: Any, config: Dict[str, Any]) -> None:
        """
        Perform the actual collection, writing into `result`.

        Args:
            target: Parsed ScanTarget.
            result: Structure returned by empty_result(); mutate in place.
            config: Collector-specific tunables, e.g. {"timeout": 5}.
        """
        ...

    async def collect(self, target_url: str, config: Dict[str, Any] | None = None) -> Any:
        """
        Run the collector with automatic error handling and timing.

        DO NOT OVERRIDE THIS METHOD. Override `execute()` instead.

        Always returns the result structure, even on failure.
        """
        config = config or {}
        result = self.empty_result()
        start = time.monotonic()

        try:
            target = ScanTarget.parse(target_url)
            await self.execute(target, result, config)
        except PolicyBlockedError as e:
            logger.warning(f"{self.name} scan of {target_url} blocked by policy: {e.reason}")
        except ScanError as e:
            logger.warning(f"Failed to collect {self.name} info for {target_url}: {e}")
        except Exception as e:
            if not self.catch_all:
                raise
            logger.warning(f"Failed to collect {self.name} info for {target_url}: {type(e).__name__}: {e}")
        finally:
            logger.debug(
                f"Collector '{self.name}' finished for {target_url} "
                f"in {round(time.monotonic() - start, 2)}s"
            )

        return result
