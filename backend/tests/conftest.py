"""
Shared fixtures: a stub DNS resolver and a stub HTTP site.

No test in this suite touches the network. Hostnames resolve through
`public_resolver` (or a per-test resolver) and every HTTP request is served
by `SiteStub` through httpx.MockTransport.
"""
import asyncio
import inspect
from typing import Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from vendorscan.scanner.fetcher import PageFetcher
from vendorscan.scanner.ssrf import SSRFGuard

PUBLIC_IP = "93.184.216.34"
TARGET = "vendor.example"

Route = Union[Tuple[int, Dict[str, str], Union[str, bytes]], Callable]


async def public_resolver(host: str) -> List[str]:
    return [PUBLIC_IP]


def padded(text: str, length: int = 600) -> str:
    """HTML page containing text, padded with filler to at least `length` chars."""
    page = f"<html><head><title>Page</title></head><body><p>{text}</p>"
    filler = "<p>Lorem ipsum dolor sit amet.</p>"
    while len(page) < length:
        page += filler
    return page + "</body></html>"


class SiteStub:
    """
    Minimal fake web server for httpx.MockTransport.

    routes map a URL path (optionally prefixed with "http:" to only match
    plain-HTTP requests) to (status, headers, body) or to a callable
    request -> Response (which may be async, e.g. to hang forever).
    A bytes body is sent as-is, so it can carry a Content-Encoding.

    Responses go out as unread streams, the way a socket delivers them.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None, default_status: int = 404):
        self.routes = routes or {}
        self.default_status = default_status
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(f"{request.url.scheme}:{request.url.path}")
        if route is None:
            route = self.routes.get(request.url.path)
        if route is None:
            return _streamed(self.default_status, {}, b"not found")
        if callable(route):
            response = route(request)
            if inspect.isawaitable(response):
                response = await response
            return _streamed(response.status_code, response.headers, response.content)
        status, headers, body = route
        if isinstance(body, str):
            body = body.encode("utf-8")
        return _streamed(status, headers, body)

    @property
    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


def _streamed(status: int, headers, body: bytes) -> httpx.Response:
    return httpx.Response(status, headers=headers, stream=httpx.ByteStream(body))


async def hang(request: httpx.Request) -> httpx.Response:
    await asyncio.sleep(3600)
    return httpx.Response(200)


def make_fetcher(site: SiteStub, guard: Optional[SSRFGuard] = None) -> PageFetcher:
    return PageFetcher(
        guard=guard or SSRFGuard(resolver=public_resolver),
        transport=httpx.MockTransport(site),
    )


@pytest.fixture
def guard() -> SSRFGuard:
    return SSRFGuard(resolver=public_resolver)
