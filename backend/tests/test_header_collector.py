"""
Tests for the security headers collector.
"""
import httpx
import pytest

from vendorscan.scanner.collectors.header_collector import HeaderCollector

from conftest import TARGET, SiteStub, make_fetcher

BASELINE = [
    "Strict-Transport-Security",
    "Content-Security-Policy",
    "X-Frame-Options",
    "X-Content-Type-Options",
]


def make_collector(site):
    return HeaderCollector(fetcher=make_fetcher(site))


@pytest.mark.asyncio
async def test_all_headers_present_with_mixed_case_names():
    site = SiteStub({"/": (200, {
        "strict-transport-security": "max-age=63072000; includeSubDomains",
        "CONTENT-SECURITY-POLICY": "default-src 'self'",
        "X-Frame-Options": "DENY",
        "x-content-type-options": "nosniff",
        "X-XSS-Protection": "0",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=()",
    }, "")})

    result = await make_collector(site).collect(TARGET)

    assert result.missing_headers == []
    assert result.headers.strict_transport_security == "max-age=63072000; includeSubDomains"
    assert result.headers.content_security_policy == "default-src 'self'"
    assert result.headers.x_frame_options == "DENY"
    assert result.headers.x_content_type_options == "nosniff"
    assert result.headers.x_xss_protection == "0"
    assert result.headers.referrer_policy == "strict-origin-when-cross-origin"
    assert result.headers.permissions_policy == "camera=()"
    assert site.requests[0].method == "HEAD"
    assert str(site.requests[0].url) == f"https://{TARGET}/"


@pytest.mark.asyncio
async def test_no_headers_reports_baseline_in_order():
    site = SiteStub({"/": (200, {"Server": "nginx"}, "")})

    result = await make_collector(site).collect(TARGET)

    assert result.missing_headers == BASELINE
    assert result.headers.as_dict() == {}


@pytest.mark.asyncio
async def test_advisory_headers_are_never_missing():
    site = SiteStub({"/": (200, {
        "Strict-Transport-Security": "max-age=31536000",
        "X-Frame-Options": "SAMEORIGIN",
    }, "")})

    result = await make_collector(site).collect(TARGET)

    assert result.missing_headers == ["Content-Security-Policy", "X-Content-Type-Options"]
    assert "X-XSS-Protection" not in result.missing_headers
    assert result.headers.referrer_policy is None


@pytest.mark.asyncio
async def test_repeated_header_values_are_joined():
    def handler(request):
        return httpx.Response(200, headers=[
            ("Content-Security-Policy", "default-src 'self'"),
            ("Content-Security-Policy", "frame-ancestors 'none'"),
        ])

    result = await make_collector(SiteStub({"/": handler})).collect(TARGET)

    assert result.headers.content_security_policy == "default-src 'self', frame-ancestors 'none'"


@pytest.mark.asyncio
async def test_headers_follow_redirect():
    site = SiteStub({
        "/": (301, {"Location": f"https://www.{TARGET}/home"}, ""),
        "/home": (200, {"X-Frame-Options": "DENY"}, ""),
    })

    result = await make_collector(site).collect(TARGET)

    assert result.headers.x_frame_options == "DENY"
    assert "X-Frame-Options" not in result.missing_headers


@pytest.mark.asyncio
async def test_unreachable_host_reports_nothing():
    def refuse(request):
        raise httpx.ConnectError("connection refused")

    result = await make_collector(SiteStub({"/": refuse})).collect(TARGET)

    assert result.missing_headers == []
    assert result.headers.as_dict() == {}


@pytest.mark.asyncio
async def test_blocked_host_reports_nothing_and_sends_nothing():
    site = SiteStub(default_status=200)

    result = await make_collector(site).collect("http://192.168.1.1")

    assert result.missing_headers == []
    assert result.as_dict() == {"headers": {}, "missingHeaders": []}
    assert site.requests == []
