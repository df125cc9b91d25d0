# vendorscan/scanner/errors.py
"""
Error taxonomy for the posture scanner.

    ScanError
    ├── InvalidTargetError        input can't be turned into a ScanTarget
    ├── PolicyBlockedError        SSRF guard rejected the target
    ├── UnreachableError          refused / timed out / DNS failure
    ├── ProtocolError             malformed response, bad redirect chain,
    │   └── CertificateUntrustedError   handshake failure
    └── ScanTimeoutError          orchestrator global ceiling exceeded

None of these cross a collector's public boundary. Collectors catch them,
log a warning and return their default (weaker) result. "No heuristic
matched" is a negative result, not an error, and has no class here.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base class for expected scanning failures."""


class InvalidTargetError(ScanError):
    pass


class PolicyBlockedError(ScanError):
    """Target resolves to a private, loopback, link-local or metadata address."""

    def __init__(self, target: str, reason: str):
        super().__init__(f"{target} blocked by policy: {reason}")
        self.target = target
        self.reason = reason


class UnreachableError(ScanError):
    pass


class ProtocolError(ScanError):
    pass


class CertificateUntrustedError(ProtocolError):
    """TLS handshake failed certificate-chain verification."""


class ScanTimeoutError(ScanError):
    pass
