"""Absolute URL helpers for code that builds redirects or links."""

from __future__ import annotations

from urllib.parse import urlencode

from .config import AppConfig
from .requests import Request

AUTH_CALLBACK_PATH = "/auth/callback"


def _first(value: str | None) -> str | None:
    # proxies append to forwarded headers; the left-most entry is the client-facing one
    if not value:
        return None
    candidate = value.split(",", 1)[0].strip()
    return candidate or None


def request_origin(request: Request, config: AppConfig) -> str:
    """Return ``scheme://host`` as the client addressed it."""

    proto = _first(request.header("x-forwarded-proto")) or config.scheme
    host = _first(request.header("x-forwarded-host")) or request.host or config.primary_domain
    return f"{proto.lower()}://{host}"


def tenant_url(config: AppConfig, tenant: str, path: str = "/") -> str:
    if not path.startswith("/"):
        path = "/" + path
    return f"{config.scheme}://{config.tenant_host(tenant.lower())}{path}"


def auth_redirect_url(request: Request, config: AppConfig, next_path: str | None = None) -> str:
    url = request_origin(request, config) + AUTH_CALLBACK_PATH
    if next_path:
        url = f"{url}?{urlencode({'next': next_path})}"
    return url


__all__ = ["AUTH_CALLBACK_PATH", "auth_redirect_url", "request_origin", "tenant_url"]
