"""Folio: multi-tenant portfolio hosting on per-user subdomains."""

from .application import FolioApp
from .config import AppConfig
from .exceptions import ConfigError, FolioError, HTTPError
from .hosts import HostRewriteMiddleware, HostRoute, HostRouter, RouteDecision
from .observability import Observability, ObservabilityConfig
from .profiles import InMemoryProfileStore, Profile, ProfileStore, mount_profile_pages
from .requests import Request
from .responses import JSONResponse, PlainTextResponse, Response
from .tenancy import RouteReason, TenantMatch, TenantResolver
from .testing import TestClient

__all__ = [
    "AppConfig",
    "ConfigError",
    "FolioApp",
    "FolioError",
    "HTTPError",
    "HostRewriteMiddleware",
    "HostRoute",
    "HostRouter",
    "InMemoryProfileStore",
    "JSONResponse",
    "Observability",
    "ObservabilityConfig",
    "PlainTextResponse",
    "Profile",
    "ProfileStore",
    "Request",
    "Response",
    "RouteDecision",
    "RouteReason",
    "TenantMatch",
    "TenantResolver",
    "TestClient",
    "mount_profile_pages",
]
