"""
Tests for the bounded page fetcher.
"""
import gzip
import zlib

import httpx
import pytest

from vendorscan.scanner.errors import PolicyBlockedError
from vendorscan.scanner.fetcher import PageFetcher
from vendorscan.scanner.ssrf import SSRFGuard

from conftest import SiteStub, hang, make_fetcher


@pytest.mark.asyncio
@pytest.mark.parametrize("url", [
    "http://127.0.0.1/",
    "https://10.0.0.1/",
    "http://192.168.0.10:8080/",
    "http://169.254.169.254/latest/meta-data/",
    "https://localhost/",
    "http://[::1]/",
])
async def test_blocked_target_opens_no_connection(url):
    site = SiteStub(default_status=200)
    fetcher = make_fetcher(site)

    with pytest.raises(PolicyBlockedError):
        await fetcher.fetch(url)

    assert site.requests == []


@pytest.mark.asyncio
async def test_hostname_resolving_to_private_range_opens_no_connection():
    async def resolver(host):
        return ["172.20.1.1"]

    site = SiteStub(default_status=200)
    fetcher = make_fetcher(site, guard=SSRFGuard(resolver=resolver))

    with pytest.raises(PolicyBlockedError):
        await fetcher.fetch("https://vendor.example/")

    assert site.requests == []


@pytest.mark.asyncio
async def test_redirect_to_private_address_is_blocked_before_connecting():
    site = SiteStub({
        "/": (302, {"Location": "http://10.0.0.1/admin"}, ""),
    })
    fetcher = make_fetcher(site)

    with pytest.raises(PolicyBlockedError):
        await fetcher.fetch("https://vendor.example/")

    assert len(site.requests) == 1


@pytest.mark.asyncio
async def test_follows_up_to_three_redirects():
    site = SiteStub({
        "/": (301, {"Location": "/a"}, ""),
        "/a": (302, {"Location": "/b"}, ""),
        "/b": (307, {"Location": "https://vendor.example/final"}, ""),
        "/final": (200, {}, "landed"),
    })

    result = await make_fetcher(site).fetch("https://vendor.example/")

    assert result is not None
    assert result.status_code == 200
    assert result.body == "landed"
    assert result.url == "https://vendor.example/final"
    assert result.redirects == 3


@pytest.mark.asyncio
async def test_four_redirects_resolve_to_none():
    site = SiteStub({
        "/": (301, {"Location": "/a"}, ""),
        "/a": (301, {"Location": "/b"}, ""),
        "/b": (301, {"Location": "/c"}, ""),
        "/c": (301, {"Location": "/d"}, ""),
        "/d": (200, {}, "too far"),
    })

    assert await make_fetcher(site).fetch("https://vendor.example/") is None
    assert "/d" not in site.paths


@pytest.mark.asyncio
async def test_redirect_loop_terminates():
    site = SiteStub({"/loop": (302, {"Location": "/loop"}, "")})

    assert await make_fetcher(site).fetch("https://vendor.example/loop") is None
    assert len(site.requests) == 4


@pytest.mark.asyncio
async def test_redirects_not_followed_when_disabled():
    site = SiteStub({"/": (301, {"Location": "https://vendor.example/"}, "")})

    result = await make_fetcher(site).fetch(
        "http://vendor.example/", method="HEAD", follow_redirects=False,
    )

    assert result.status_code == 301
    assert result.is_redirect
    assert result.headers["location"] == "https://vendor.example/"
    assert len(site.requests) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("cap", [0, 1, 1000, 65536])
async def test_body_never_exceeds_cap(cap):
    site = SiteStub({"/big": (200, {}, "A" * 1_000_000)})

    result = await make_fetcher(site).fetch("https://vendor.example/big", max_body_bytes=cap)

    assert len(result.body) <= cap
    assert result.truncated is True


@pytest.mark.asyncio
async def test_compressed_body_is_capped_while_inflating():
    bomb = gzip.compress(b"A" * 10_000_000)
    site = SiteStub({"/bomb": (200, {"Content-Encoding": "gzip"}, bomb)})

    result = await make_fetcher(site).fetch("https://vendor.example/bomb", max_body_bytes=1000)

    assert result.body == "A" * 1000
    assert result.truncated is True


@pytest.mark.asyncio
@pytest.mark.parametrize("encoding,body", [
    ("gzip", gzip.compress(b"<title>Acme</title>")),
    ("deflate", zlib.compress(b"<title>Acme</title>")),
    ("identity", b"<title>Acme</title>"),
])
async def test_compressed_body_is_decoded(encoding, body):
    site = SiteStub({"/": (200, {"Content-Encoding": encoding}, body)})

    result = await make_fetcher(site).fetch("https://vendor.example/")

    assert result.body == "<title>Acme</title>"
    assert result.truncated is False
    assert site.requests[0].headers["accept-encoding"] == "gzip, deflate"


@pytest.mark.asyncio
@pytest.mark.parametrize("encoding,body", [
    ("br", b"\x8b\x03\x80hello\x03"),
    ("gzip", b"definitely not gzip"),
])
async def test_undecodable_body_resolves_to_none(encoding, body):
    site = SiteStub({"/": (200, {"Content-Encoding": encoding}, body)})

    assert await make_fetcher(site).fetch("https://vendor.example/") is None


@pytest.mark.asyncio
async def test_small_body_is_complete():
    site = SiteStub({"/": (200, {}, "hello")})

    result = await make_fetcher(site).fetch("https://vendor.example/", max_body_bytes=1000)

    assert result.body == "hello"
    assert result.truncated is False


@pytest.mark.asyncio
async def test_head_request_reads_no_body():
    site = SiteStub({"/": (200, {"X-Frame-Options": "DENY"}, "ignored")})

    result = await make_fetcher(site).fetch("https://vendor.example/", method="HEAD")

    assert result.body == ""
    assert site.requests[0].method == "HEAD"


@pytest.mark.asyncio
async def test_repeated_headers_are_joined():
    def handler(request):
        return httpx.Response(200, headers=[
            ("Content-Security-Policy", "default-src 'self'"),
            ("Content-Security-Policy", "img-src *"),
        ])

    site = SiteStub({"/": handler})

    result = await make_fetcher(site).fetch("https://vendor.example/")

    assert result.headers["content-security-policy"] == "default-src 'self', img-src *"


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    httpx.ConnectError("connection refused"),
    httpx.ConnectTimeout("timed out"),
    httpx.ReadTimeout("read timed out"),
    httpx.RemoteProtocolError("malformed"),
])
async def test_network_failures_resolve_to_none(error):
    def handler(request):
        raise error

    fetcher = make_fetcher(SiteStub({"/": handler}))

    assert await fetcher.fetch("https://vendor.example/") is None


@pytest.mark.asyncio
async def test_unresolvable_host_resolves_to_none():
    async def resolver(host):
        raise OSError("Name or service not known")

    site = SiteStub(default_status=200)
    fetcher = make_fetcher(site, guard=SSRFGuard(resolver=resolver))

    assert await fetcher.fetch("https://nxdomain.vendor.example/") is None
    assert site.requests == []


@pytest.mark.asyncio
async def test_total_timeout_bounds_hanging_request():
    fetcher = make_fetcher(SiteStub({"/": hang}))

    assert await fetcher.fetch("https://vendor.example/", total_timeout=0.1) is None


@pytest.mark.asyncio
async def test_fetch_text_only_returns_200_bodies():
    site = SiteStub({
        "/ok": (200, {}, "content"),
        "/missing": (404, {}, "not here"),
    })
    fetcher = make_fetcher(site)

    assert await fetcher.fetch_text("https://vendor.example/ok") == "content"
    assert await fetcher.fetch_text("https://vendor.example/missing") is None


def test_default_fetcher_builds_its_own_guard():
    fetcher = PageFetcher()
    assert isinstance(fetcher.guard, SSRFGuard)
