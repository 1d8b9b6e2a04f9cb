"""Wildcard-subdomain host routing.

Every tenant portfolio is served from ``{tenant}.{primary_domain}``. The
:class:`HostRouter` decides, from the request hostname and path alone, whether a
request belongs to the platform itself (pass through untouched) or to a tenant
page, in which case the internal path becomes ``/{tenant}{path}``. The client
never sees the rewritten path.

Routing is fail-open: a request the router cannot classify, or one that makes
the router raise, is passed through unchanged. Whether the tenant actually
exists is decided later by the page stage (see :mod:`folio.profiles`).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable

from msgspec import Struct

from .config import DEFAULT_BYPASS_PREFIXES, AppConfig
from .middleware import Handler
from .observability import Observability
from .requests import Request
from .responses import NO_STORE, Response
from .tenancy import RouteReason, TenantResolver

logger = logging.getLogger(__name__)

TENANT_HEADER = "x-folio-tenant"
REWRITE_HEADER = "x-folio-rewrite-to"


class RouteDecision(str, Enum):
    PASS_THROUGH = "pass_through"
    REWRITE = "rewrite"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


class HostRoute(Struct, frozen=True):
    """Outcome of routing one request."""

    decision: RouteDecision
    reason: RouteReason
    path: str
    query_string: str = ""
    tenant: str | None = None

    @property
    def rewritten(self) -> bool:
        return self.decision is RouteDecision.REWRITE

    @property
    def target(self) -> str:
        """Internal path with the untouched query string re-attached."""

        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path


def is_bypassed(path: str, prefixes: Iterable[str] = DEFAULT_BYPASS_PREFIXES) -> bool:
    """Return ``True`` for platform assets and API paths that are never tenant pages."""

    for prefix in prefixes:
        stem = prefix.rstrip("/")
        if path == stem or path.startswith(stem + "/"):
            return True
    last_segment = path.rsplit("/", 1)[-1]
    return "." in last_segment


def tenant_path(tenant: str, path: str) -> str:
    if path == "/":
        return f"/{tenant}"
    return f"/{tenant}{path}"


class HostRouter:
    """Map ``(hostname, path)`` to a :class:`HostRoute`."""

    def __init__(
        self,
        *,
        primary_domain: str,
        min_tenant_length: int = 2,
        reserved_subdomains: Iterable[str] = ("www",),
        bypass_prefixes: Iterable[str] = DEFAULT_BYPASS_PREFIXES,
    ) -> None:
        self.resolver = TenantResolver(
            primary_domain=primary_domain,
            min_length=min_tenant_length,
            reserved=reserved_subdomains,
        )
        self.bypass_prefixes = tuple(bypass_prefixes)

    @classmethod
    def from_config(cls, config: AppConfig) -> "HostRouter":
        return cls(
            primary_domain=config.primary_domain,
            min_tenant_length=config.min_tenant_length,
            reserved_subdomains=config.reserved_subdomains,
            bypass_prefixes=config.bypass_prefixes,
        )

    @property
    def primary_domain(self) -> str:
        return self.resolver.primary_domain

    def decide(self, hostname: str | None, path: str) -> HostRoute:
        """Route a request; ``path`` may carry a ``?query`` suffix.

        Raises whatever the underlying string handling raises. Use
        :meth:`route` for the fail-open variant.
        """

        path, _, query_string = path.partition("?")
        if not path.startswith("/"):
            path = "/" + path
        if is_bypassed(path, self.bypass_prefixes):
            return _pass_through(RouteReason.BYPASS, path, query_string)
        match = self.resolver.resolve(hostname)
        if match.tenant is None:
            return _pass_through(match.reason, path, query_string)
        return HostRoute(
            decision=RouteDecision.REWRITE,
            reason=RouteReason.TENANT,
            path=tenant_path(match.tenant, path),
            query_string=query_string,
            tenant=match.tenant,
        )

    def route(self, hostname: str | None, path: str) -> HostRoute:
        """Like :meth:`decide` but never raises."""

        try:
            return self.decide(hostname, path)
        except Exception:
            logger.exception("Host routing failed for host=%r path=%r", hostname, path)
            original, _, query_string = path.partition("?")
            return _pass_through(RouteReason.FAULT, original, query_string)


def _pass_through(reason: RouteReason, path: str, query_string: str) -> HostRoute:
    return HostRoute(
        decision=RouteDecision.PASS_THROUGH,
        reason=reason,
        path=path,
        query_string=query_string,
    )


class HostRewriteMiddleware:
    """Apply :class:`HostRouter` decisions to live requests."""

    def __init__(
        self,
        router: HostRouter,
        *,
        observability: Observability | None = None,
        debug_headers: bool = False,
    ) -> None:
        self.router = router
        self.observability = observability
        self.debug_headers = debug_headers

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        observability: Observability | None = None,
    ) -> "HostRewriteMiddleware":
        return cls(
            HostRouter.from_config(config),
            observability=observability,
            debug_headers=config.emit_debug_headers,
        )

    async def __call__(self, request: Request, handler: Handler) -> Response:
        route, rewritten = self._prepare(request)
        if rewritten is None:
            return await handler(request)
        response = await handler(rewritten)
        return self.annotate(response, route)

    def _prepare(self, request: Request) -> tuple[HostRoute | None, Request | None]:
        try:
            route = self.router.decide(request.host, request.path)
            if self.observability is not None:
                self.observability.on_host_route(route, hostname=request.host, path=request.path)
            if not route.rewritten:
                return route, None
            return route, request.rewrite(route.path, tenant=route.tenant)
        except Exception as exc:
            logger.exception("Host rewrite failed; passing request through")
            if self.observability is not None:
                self.observability.on_host_route_error(exc, hostname=request.host, path=request.path)
            return None, None

    def annotate(self, response: Response, route: HostRoute | None) -> Response:
        if route is None or not route.rewritten:
            return response
        annotated = response.with_header("cache-control", NO_STORE)
        if self.debug_headers and route.tenant is not None:
            annotated = annotated.with_header(TENANT_HEADER, route.tenant)
            annotated = annotated.with_header(REWRITE_HEADER, route.path)
        return annotated


__all__ = [
    "REWRITE_HEADER",
    "TENANT_HEADER",
    "HostRewriteMiddleware",
    "HostRoute",
    "HostRouter",
    "RouteDecision",
    "is_bypassed",
    "tenant_path",
]
