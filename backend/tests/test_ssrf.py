"""
Tests for the SSRF guard.
"""
import socket
from unittest.mock import AsyncMock

import pytest

from vendorscan.scanner.errors import PolicyBlockedError, UnreachableError
from vendorscan.scanner.ssrf import SSRFGuard, extract_host, is_blocked_ip

from conftest import PUBLIC_IP, public_resolver


@pytest.mark.parametrize("ip", [
    "127.0.0.1",
    "127.8.8.8",
    "10.1.2.3",
    "172.16.0.1",
    "172.31.255.255",
    "192.168.1.1",
    "169.254.169.254",
    "100.100.100.200",
    "0.0.0.0",
    "224.0.0.1",
    "::1",
    "::",
    "fe80::1",
    "fd00::1",
    "fd00:ec2::254",
    "::ffff:10.0.0.1",
    "::ffff:127.0.0.1",
])
def test_is_blocked_ip_rejects_internal_addresses(ip):
    assert is_blocked_ip(ip) is True


@pytest.mark.parametrize("ip", [
    "8.8.8.8",
    "172.32.0.1",
    "93.184.216.34",
    "2606:4700:4700::1111",
    "::ffff:8.8.8.8",
])
def test_is_blocked_ip_allows_public_addresses(ip):
    assert is_blocked_ip(ip) is False


def test_extract_host_defaults_to_https():
    assert extract_host("Example.COM") == ("https", "example.com")
    assert extract_host("http://example.com:8080/path") == ("http", "example.com")
    assert extract_host("https://[::1]:443/") == ("https", "::1")


@pytest.mark.asyncio
async def test_validate_allows_public_host(guard):
    verdict = await guard.validate("https://vendor.example/trust")
    assert verdict.valid is True
    assert verdict.addresses == [PUBLIC_IP]


@pytest.mark.asyncio
@pytest.mark.parametrize("target", [
    "localhost",
    "http://localhost:8080/",
    "metadata.google.internal",
    "http://127.0.0.1/",
    "https://10.0.0.5",
    "169.254.169.254",
    "http://[::1]/",
])
async def test_validate_blocks_internal_targets_without_resolving(target):
    resolver = AsyncMock(return_value=[PUBLIC_IP])
    guard = SSRFGuard(resolver=resolver)

    verdict = await guard.validate(target)

    assert verdict.valid is False
    assert verdict.resolved is True
    resolver.assert_not_called()


@pytest.mark.asyncio
async def test_validate_blocks_hostname_resolving_to_private_ip():
    async def resolver(host):
        return ["10.0.0.5"]

    verdict = await SSRFGuard(resolver=resolver).validate("internal.vendor.example")

    assert verdict.valid is False
    assert "private IP 10.0.0.5" in verdict.reason


@pytest.mark.asyncio
async def test_validate_blocks_when_any_address_is_private():
    async def resolver(host):
        return [PUBLIC_IP, "192.168.0.7"]

    verdict = await SSRFGuard(resolver=resolver).validate("rebind.vendor.example")
    assert verdict.valid is False


@pytest.mark.asyncio
async def test_validate_rejects_non_http_scheme(guard):
    verdict = await guard.validate("ftp://vendor.example/")
    assert verdict.valid is False
    assert "Protocol ftp" in verdict.reason


@pytest.mark.asyncio
async def test_dns_failure_is_unreachable_not_blocked():
    async def resolver(host):
        raise socket.gaierror(-2, "Name or service not known")

    guard = SSRFGuard(resolver=resolver)
    verdict = await guard.validate("nxdomain.vendor.example")

    assert verdict.valid is False
    assert verdict.resolved is False

    with pytest.raises(UnreachableError):
        await guard.ensure_allowed("nxdomain.vendor.example")


@pytest.mark.asyncio
async def test_ensure_allowed_raises_policy_blocked():
    guard = SSRFGuard(resolver=public_resolver)

    with pytest.raises(PolicyBlockedError) as exc_info:
        await guard.ensure_allowed("http://127.0.0.1/admin")

    assert exc_info.value.target == "127.0.0.1"
    assert "private" in exc_info.value.reason


@pytest.mark.asyncio
async def test_ensure_allowed_returns_addresses(guard):
    assert await guard.ensure_allowed("vendor.example") == [PUBLIC_IP]
