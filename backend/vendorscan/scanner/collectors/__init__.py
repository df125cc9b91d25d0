# vendorscan/scanner/collectors/__init__.py
"""
Posture collectors.
Each collector gathers one family of facts about a vendor host.
Collectors do NOT classify severity; they only report what they observed.
"""
from vendorscan.scanner.collectors.ssl_collector import SSLCollector
from vendorscan.scanner.collectors.header_collector import HeaderCollector
from vendorscan.scanner.collectors.web_collector import WebCollector
from vendorscan.scanner.collectors.compliance_collector import ComplianceCollector

# Registry of all available collectors.
# The orchestrator uses this to know what's available.
ALL_COLLECTORS = {
    "ssl": SSLCollector,
    "headers": HeaderCollector,
    "web_presence": WebCollector,
    "compliance": ComplianceCollector,
}

__all__ = [
    "SSLCollector", "HeaderCollector", "WebCollector", "ComplianceCollector",
    "ALL_COLLECTORS",
]
