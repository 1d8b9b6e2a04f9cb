"""Application configuration objects."""

from __future__ import annotations

import os
from typing import Any, Mapping

import msgspec
from msgspec import structs

from .exceptions import ConfigError
from .observability import ObservabilityConfig

DEFAULT_BYPASS_PREFIXES: tuple[str, ...] = (
    "/api",
    "/_next/static",
    "/_next/image",
    "/static",
    "/favicon.ico",
)

_ENV_PREFIX = "FOLIO_"
_ENV_FIELDS: tuple[str, ...] = (
    "primary_domain",
    "scheme",
    "min_tenant_length",
    "bypass_prefixes",
    "debug",
)


class AppConfig(msgspec.Struct, frozen=True):
    """Typed configuration for a :class:`~folio.application.FolioApp` instance."""

    primary_domain: str = "localhost"
    scheme: str = "https"
    min_tenant_length: int = 2
    reserved_subdomains: tuple[str, ...] = ("www",)
    bypass_prefixes: tuple[str, ...] = DEFAULT_BYPASS_PREFIXES
    debug: bool = False
    debug_headers: bool | None = None
    observability: ObservabilityConfig = ObservabilityConfig()

    def __post_init__(self) -> None:
        if not self.primary_domain.strip(". "):
            raise ConfigError("primary_domain must not be empty")
        if self.min_tenant_length < 1:
            raise ConfigError("min_tenant_length must be at least 1")
        if self.scheme not in ("http", "https"):
            raise ConfigError(f"Unsupported scheme: {self.scheme!r}")

    @property
    def emit_debug_headers(self) -> bool:
        if self.debug_headers is None:
            return self.debug
        return self.debug_headers

    def tenant_host(self, tenant: str) -> str:
        """Return the hostname serving ``tenant``."""

        return f"{tenant}.{self.primary_domain}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "AppConfig":
        """Build a configuration from ``FOLIO_*`` environment variables."""

        source = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field in _ENV_FIELDS:
            raw = source.get(_ENV_PREFIX + field.upper())
            if raw is None or not raw.strip():
                continue
            if field == "bypass_prefixes":
                values[field] = tuple(item.strip() for item in raw.split(",") if item.strip())
            else:
                values[field] = raw.strip()
        try:
            config = msgspec.convert(values, type=cls, strict=False)
        except msgspec.ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
        if overrides:
            config = structs.replace(config, **overrides)
        return config
