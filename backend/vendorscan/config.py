# vendorscan/config.py
"""
Runtime configuration and logging setup.

Everything here is read from the environment at call time, so tests can
monkeypatch os.environ without reloading modules.

Environment:
    ALLOW_INSECURE_TLS  "true" lets the TLS inspector read certificates from
                        hosts whose chain does not verify. Default: false.
    VENDORSCAN_ENV      "production" switches logging from DEBUG to INFO.
"""

from __future__ import annotations

import logging
import os

# ── Scanner identity ────────────────────────────────────────────
USER_AGENT = "VendorScan Security Scanner/1.0"
ACCEPT_HTML = "text/html,application/xhtml+xml,text/plain"

# ── Resource bounds ─────────────────────────────────────────────
MAX_REDIRECTS = 3
WEB_MAX_BODY_BYTES = 500_000          # web presence + header probes
COMPLIANCE_MAX_BODY_BYTES = 300_000   # trust / privacy / bug-bounty probes

# ── Timeouts (seconds) ──────────────────────────────────────────
DEFAULT_TIMEOUT = 10
HEADER_TIMEOUT = 15
COMPLIANCE_SOCKET_TIMEOUT = 3
COMPLIANCE_FETCH_CEILING = 10
COMPLIANCE_PATH_DEADLINE = 25
SCAN_TIMEOUT = 90


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def allow_insecure_tls() -> bool:
    """Whether TLS chain validation may be bypassed for certificate inspection."""
    return _env_flag("ALLOW_INSECURE_TLS")


def is_production() -> bool:
    return os.getenv("VENDORSCAN_ENV", "").strip().lower() == "production"


def configure_logging() -> None:
    """
    Apply the service log format. Called once by the embedding service;
    the library itself never configures logging on import.
    """
    if is_production():
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )

    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
