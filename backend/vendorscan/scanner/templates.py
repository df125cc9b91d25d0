# vendorscan/scanner/templates.py
"""
Static pattern tables used by the collectors.

Canonical source of truth for:
    - certification patterns   (pattern → label, flag, SOC 2 type)
    - trust-portal providers   (pattern → SaaS provider name)
    - candidate paths          (trust portal, privacy policy, bug bounty)
    - keyword sets             (trust / privacy page confirmation, mentions)
    - security headers         (canonical name, result field, baseline?)

Everything is ordered data, not branching code: order is priority. Matching
logic lives in match_certifications() / detect_trust_provider() so it can be
tested against the tables directly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple


# ---------------------------------------------------------------------------
# Certifications
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CertificationPattern:
    label: str                          # appended to ComplianceIndicators.certifications
    pattern: Pattern[str]
    flag: Optional[str] = None          # ComplianceIndicators attribute set to True
    soc2_type: Optional[str] = None     # "Type I" / "Type II"
    family: Optional[str] = None        # first match per family wins on a page


# Most specific first within a family. "SOC 2 Type II" must not also
# produce "SOC 2 Type I" (prefix) or the generic "SOC 2" label.
CERTIFICATION_PATTERNS: Tuple[CertificationPattern, ...] = (
    CertificationPattern(
        "SOC 2 Type II", re.compile(r"soc\s*2?\s*type\s*(?:ii|2)\b", re.I),
        flag="has_soc2", soc2_type="Type II", family="soc2",
    ),
    CertificationPattern(
        "SOC 2 Type I", re.compile(r"soc\s*2?\s*type\s*(?:i|1)\b", re.I),
        flag="has_soc2", soc2_type="Type I", family="soc2",
    ),
    CertificationPattern(
        "SOC 2", re.compile(r"soc\s*2", re.I),
        flag="has_soc2", family="soc2",
    ),
    CertificationPattern("ISO 27001", re.compile(r"iso\s*27001", re.I), flag="has_iso27001"),
    CertificationPattern("GDPR", re.compile(r"gdpr", re.I), flag="has_gdpr"),
    CertificationPattern("HIPAA", re.compile(r"hipaa", re.I), flag="has_hipaa"),
    CertificationPattern("PCI DSS", re.compile(r"pci[\s-]?dss", re.I), flag="has_pcidss"),
    # Label only
    CertificationPattern("ISO 27701", re.compile(r"iso\s*27701", re.I)),
    CertificationPattern("FedRAMP", re.compile(r"fedramp", re.I)),
    CertificationPattern("CSA STAR", re.compile(r"csa\s*star", re.I)),
)


def match_certifications(content: str) -> List[CertificationPattern]:
    """Return the table entries that match content, in table order."""
    matched: List[CertificationPattern] = []
    seen_families = set()
    for cert in CERTIFICATION_PATTERNS:
        if cert.family and cert.family in seen_families:
            continue
        if cert.pattern.search(content):
            matched.append(cert)
            if cert.family:
                seen_families.add(cert.family)
    return matched


# ---------------------------------------------------------------------------
# Trust-portal providers
# ---------------------------------------------------------------------------

TRUST_PORTAL_PROVIDERS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"vanta", re.I), "Vanta"),
    (re.compile(r"drata", re.I), "Drata"),
    (re.compile(r"secureframe", re.I), "SecureFrame"),
    (re.compile(r"safebase", re.I), "SafeBase"),
    (re.compile(r"anecdotes", re.I), "Anecdotes"),
    (re.compile(r"trustcloud", re.I), "TrustCloud"),
)


def detect_trust_provider(content: str) -> Optional[str]:
    """First provider signature found in content, in priority order."""
    for pattern, provider in TRUST_PORTAL_PROVIDERS:
        if pattern.search(content):
            return provider
    return None


# ---------------------------------------------------------------------------
# Candidate paths
# ---------------------------------------------------------------------------

PATH_KIND_TRUST = "trust"
PATH_KIND_PRIVACY = "privacy"

# Most common first
TRUST_PORTAL_PATHS = (
    "/trust",
    "/trust/",
    "/security",
    "/trust-center",
)

# Includes "privacy notice" variants (e.g. /legal/privacy)
PRIVACY_POLICY_PATHS = (
    "/privacy",
    "/privacy-policy",
    "/privacy-notice",
    "/legal/privacy",
    "/legal/privacy-policy",
    "/legal/privacy-notice",
)

BUG_BOUNTY_PATHS = (
    "/.well-known/security.txt",
    "/security.txt",
    "/bug-bounty",
    "/responsible-disclosure",
)


def candidate_paths() -> List[Tuple[str, str]]:
    """Trust paths then privacy paths, each tagged with its purpose."""
    return (
        [(path, PATH_KIND_TRUST) for path in TRUST_PORTAL_PATHS]
        + [(path, PATH_KIND_PRIVACY) for path in PRIVACY_POLICY_PATHS]
    )


# ---------------------------------------------------------------------------
# Keywords (matched against lowercased content)
# ---------------------------------------------------------------------------

# Generic 200-OK placeholder pages are shorter than this
MIN_PAGE_LENGTH = 500
MIN_BUG_BOUNTY_LENGTH = 100

TRUST_KEYWORDS = ("trust", "security", "compliance", "soc", "iso")

PRIVACY_KEYWORDS = (
    "privacy policy",
    "privacy notice",
    "personal data",
    "personal information",
    "data protection",
)

WHITEPAPER_PHRASES = ("security whitepaper", "security overview")
WHITEPAPER_RE = re.compile(r"security\s*(?:documentation|docs)", re.I)

BUG_BOUNTY_PHRASES = (
    "bug bounty",
    "responsible disclosure",
    "vulnerability disclosure",
)


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SecurityHeaderSpec:
    canonical: str      # display name reported in missing_headers
    field: str          # SecurityHeaders attribute
    baseline: bool      # absence is flagged


SECURITY_HEADERS: Tuple[SecurityHeaderSpec, ...] = (
    SecurityHeaderSpec("Strict-Transport-Security", "strict_transport_security", True),
    SecurityHeaderSpec("Content-Security-Policy", "content_security_policy", True),
    SecurityHeaderSpec("X-Frame-Options", "x_frame_options", True),
    SecurityHeaderSpec("X-Content-Type-Options", "x_content_type_options", True),
    # Advisory: recorded if present, never flagged
    SecurityHeaderSpec("X-XSS-Protection", "x_xss_protection", False),
    SecurityHeaderSpec("Referrer-Policy", "referrer_policy", False),
    SecurityHeaderSpec("Permissions-Policy", "permissions_policy", False),
)
