# vendorscan/__init__.py
"""
External security / compliance posture scanner for third-party vendors.

Given only a vendor's public domain, probes it over the network (safely,
without credentials) for TLS health, security-header hygiene, web presence
and public compliance signals.
"""

__version__ = "0.1.0"
