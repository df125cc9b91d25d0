# vendorscan/scanner/__init__.py
"""
Vendor posture scanner.

Usage:
    from vendorscan.scanner import SecurityScanner

    scanner = SecurityScanner()
    result = await scanner.scan("vendor.example")

Architecture:
    SecurityScanner
    ├── SSRFGuard     blocks private / loopback / metadata targets
    ├── PageFetcher   bounded, SSRF-checked HTTP fetches
    └── Collectors (run in parallel)
        ├── SSLCollector         leaf certificate, grade, HTTP→HTTPS
        ├── HeaderCollector      security headers, missing baseline
        ├── WebCollector         title, contact, privacy, terms
        └── ComplianceCollector  trust portal, certifications, bug bounty
"""

from vendorscan.scanner.orchestrator import SecurityScanner, run_scan

__all__ = ["SecurityScanner", "run_scan"]
