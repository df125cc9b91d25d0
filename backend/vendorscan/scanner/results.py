# vendorscan/scanner/results.py
"""
Result structures returned by the collectors.

Every structure is created fresh per collect() call and handed upward.
as_dict() produces the camelCase shape the scan orchestrator merges and
persists; optional fields that were never observed are omitted.

Flags named has_* are positive-evidence-only: they start False and are only
ever flipped to True by a matching observation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

GRADE_A = "A"
GRADE_C = "C"
GRADE_F = "F"
GRADE_NA = "N/A"


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None."""
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class TLSInfo:
    enabled: bool = False
    issuer: Optional[str] = None
    expiry: Optional[datetime] = None
    days_until_expiry: Optional[int] = None
    grade: str = GRADE_NA
    http_redirects_to_https: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return _compact({
            "enabled": self.enabled,
            "issuer": self.issuer,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "daysUntilExpiry": self.days_until_expiry,
            "grade": self.grade,
            "httpRedirectsToHttps": self.http_redirects_to_https,
        })


@dataclass
class SecurityHeaders:
    """Sparse map of the recognized security headers that were present."""
    strict_transport_security: Optional[str] = None
    content_security_policy: Optional[str] = None
    x_frame_options: Optional[str] = None
    x_content_type_options: Optional[str] = None
    x_xss_protection: Optional[str] = None
    referrer_policy: Optional[str] = None
    permissions_policy: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return _compact({
            "strictTransportSecurity": self.strict_transport_security,
            "contentSecurityPolicy": self.content_security_policy,
            "xFrameOptions": self.x_frame_options,
            "xContentTypeOptions": self.x_content_type_options,
            "xXssProtection": self.x_xss_protection,
            "referrerPolicy": self.referrer_policy,
            "permissionsPolicy": self.permissions_policy,
        })


@dataclass
class HeadersResult:
    headers: SecurityHeaders = field(default_factory=SecurityHeaders)
    missing_headers: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "headers": self.headers.as_dict(),
            "missingHeaders": list(self.missing_headers),
        }


@dataclass
class WebPresenceInfo:
    accessible: bool = False
    status_code: Optional[int] = None
    title: Optional[str] = None
    has_contact_info: bool = False
    contact_email: Optional[str] = None
    has_privacy_policy: bool = False
    privacy_policy_url: Optional[str] = None
    has_terms_of_service: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return _compact({
            "accessible": self.accessible,
            "statusCode": self.status_code,
            "title": self.title,
            "hasContactInfo": self.has_contact_info,
            "contactEmail": self.contact_email,
            "hasPrivacyPolicy": self.has_privacy_policy,
            "privacyPolicyUrl": self.privacy_policy_url,
            "hasTermsOfService": self.has_terms_of_service,
        })


@dataclass
class ComplianceIndicators:
    has_trust_portal: bool = False
    trust_portal_url: Optional[str] = None
    trust_portal_provider: Optional[str] = None

    has_soc2: bool = False
    soc2_type: Optional[str] = None          # "Type I" | "Type II"
    has_iso27001: bool = False
    has_gdpr: bool = False
    has_hipaa: bool = False
    has_pcidss: bool = False
    certifications: List[str] = field(default_factory=list)

    has_security_whitepaper: bool = False
    has_bug_bounty: bool = False
    bug_bounty_url: Optional[str] = None
    has_privacy_policy: bool = False
    privacy_policy_url: Optional[str] = None

    def add_certification(self, label: str) -> None:
        """Append a label, keeping the list free of duplicates and in first-seen order."""
        if label not in self.certifications:
            self.certifications.append(label)

    def as_dict(self) -> Dict[str, Any]:
        return _compact({
            "hasTrustPortal": self.has_trust_portal,
            "trustPortalUrl": self.trust_portal_url,
            "trustPortalProvider": self.trust_portal_provider,
            "hasSOC2": self.has_soc2,
            "soc2Type": self.soc2_type,
            "hasISO27001": self.has_iso27001,
            "hasGDPR": self.has_gdpr,
            "hasHIPAA": self.has_hipaa,
            "hasPCIDSS": self.has_pcidss,
            "certifications": list(self.certifications),
            "hasSecurityWhitepaper": self.has_security_whitepaper,
            "hasBugBounty": self.has_bug_bounty,
            "bugBountyUrl": self.bug_bounty_url,
            "hasPrivacyPolicy": self.has_privacy_policy,
            "privacyPolicyUrl": self.privacy_policy_url,
        })


@dataclass
class SecurityScanResult:
    """All four collector outputs for one target, as merged by the orchestrator."""
    target_url: str
    scanned_at: datetime
    ssl: TLSInfo
    headers: HeadersResult
    web_presence: WebPresenceInfo
    compliance: ComplianceIndicators
    duration_seconds: float = 0.0

    @property
    def security_headers(self) -> SecurityHeaders:
        return self.headers.headers

    @property
    def missing_headers(self) -> List[str]:
        return self.headers.missing_headers

    def as_dict(self) -> Dict[str, Any]:
        return {
            "targetUrl": self.target_url,
            "scannedAt": self.scanned_at.isoformat(),
            "ssl": self.ssl.as_dict(),
            "securityHeaders": self.security_headers.as_dict(),
            "missingHeaders": list(self.missing_headers),
            "webPresence": self.web_presence.as_dict(),
            "compliance": self.compliance.as_dict(),
            "durationSeconds": self.duration_seconds,
        }
