from __future__ import annotations

import logging

import pytest

from folio.hosts import REWRITE_HEADER, TENANT_HEADER, HostRewriteMiddleware, HostRouter
from folio.observability import Observability, ObservabilityConfig
from folio.requests import Request
from folio.responses import NO_STORE, Response


def _request(host: str | None, path: str, query_string: str = "") -> Request:
    return Request(method="GET", path=path, host=host, headers={}, query_string=query_string)


class _Recorder:
    def __init__(self, response: Response | None = None) -> None:
        self.seen: list[Request] = []
        self.response = response or Response(status=200, body=b"ok")

    async def __call__(self, request: Request) -> Response:
        self.seen.append(request)
        return self.response


class _RecordingObservability(Observability):
    def __init__(self) -> None:
        super().__init__(ObservabilityConfig(enabled=False))
        self.routes: list[tuple[object, str | None, str]] = []
        self.errors: list[BaseException] = []

    def on_host_route(self, route, *, hostname, path) -> None:
        self.routes.append((route, hostname, path))

    def on_host_route_error(self, error, *, hostname, path) -> None:
        self.errors.append(error)


@pytest.mark.asyncio
async def test_rewrite_reaches_handler_with_tenant_path() -> None:
    middleware = HostRewriteMiddleware(HostRouter(primary_domain="flavorr.in"))
    handler = _Recorder()
    response = await middleware(_request("alice.flavorr.in", "/foo/bar", "x=1"), handler)
    seen = handler.seen[0]
    assert seen.path == "/alice/foo/bar"
    assert seen.original_path == "/foo/bar"
    assert seen.query_string == "x=1"
    assert seen.query_params == {"x": ["1"]}
    assert seen.host == "alice.flavorr.in"
    assert seen.tenant == "alice"
    assert seen.rewritten
    assert response.header("cache-control") == NO_STORE
    assert response.header(TENANT_HEADER) is None


@pytest.mark.asyncio
async def test_rewrite_replaces_existing_cache_control() -> None:
    middleware = HostRewriteMiddleware(HostRouter(primary_domain="flavorr.in"))
    handler = _Recorder(Response(status=200, headers=(("Cache-Control", "public, max-age=600"),)))
    response = await middleware(_request("alice.flavorr.in", "/"), handler)
    values = [value for name, value in response.headers if name.lower() == "cache-control"]
    assert values == [NO_STORE]


@pytest.mark.asyncio
async def test_pass_through_leaves_request_and_response_alone() -> None:
    middleware = HostRewriteMiddleware(HostRouter(primary_domain="flavorr.in"))
    original = Response(status=200, headers=(("cache-control", "public, max-age=60"),))
    handler = _Recorder(original)
    request = _request("flavorr.in", "/pricing")
    response = await middleware(request, handler)
    assert handler.seen == [request]
    assert response is original


@pytest.mark.asyncio
async def test_debug_headers_are_optional() -> None:
    middleware = HostRewriteMiddleware(HostRouter(primary_domain="flavorr.in"), debug_headers=True)
    response = await middleware(_request("alice.flavorr.in", "/projects"), _Recorder())
    assert response.header(TENANT_HEADER) == "alice"
    assert response.header(REWRITE_HEADER) == "/alice/projects"


@pytest.mark.asyncio
async def test_missing_host_passes_through() -> None:
    middleware = HostRewriteMiddleware(HostRouter(primary_domain="flavorr.in"))
    handler = _Recorder()
    request = _request(None, "/")
    await middleware(request, handler)
    assert handler.seen == [request]


@pytest.mark.asyncio
async def test_routing_events_are_reported() -> None:
    observability = _RecordingObservability()
    middleware = HostRewriteMiddleware(HostRouter(primary_domain="flavorr.in"), observability=observability)
    await middleware(_request("alice.flavorr.in", "/"), _Recorder())
    await middleware(_request("flavorr.in", "/"), _Recorder())
    decisions = [route.decision.value for route, _, _ in observability.routes]
    assert decisions == ["rewrite", "pass_through"]
    assert observability.routes[0][1] == "alice.flavorr.in"


@pytest.mark.asyncio
async def test_router_fault_fails_open(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    router = HostRouter(primary_domain="flavorr.in")
    observability = _RecordingObservability()
    middleware = HostRewriteMiddleware(router, observability=observability)

    def explode(host, path):
        raise ValueError("malformed host")

    monkeypatch.setattr(router, "decide", explode)
    handler = _Recorder()
    request = _request("alice.flavorr.in", "/projects")
    with caplog.at_level(logging.ERROR, logger="folio.hosts"):
        response = await middleware(request, handler)
    assert handler.seen == [request]
    assert response.status == 200
    assert response.header("cache-control") is None
    assert isinstance(observability.errors[0], ValueError)
    assert "passing request through" in caplog.text


@pytest.mark.asyncio
async def test_handler_errors_are_not_swallowed() -> None:
    middleware = HostRewriteMiddleware(HostRouter(primary_domain="flavorr.in"))

    async def failing(request: Request) -> Response:
        raise RuntimeError("page stage failed")

    with pytest.raises(RuntimeError):
        await middleware(_request("alice.flavorr.in", "/"), failing)
