"""Tenant resolution primitives."""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from msgspec import Struct

from .exceptions import ConfigError


class RouteReason(str, Enum):
    BYPASS = "bypass"
    NO_HOST = "no_host"
    ROOT_DOMAIN = "root_domain"
    NO_SUBDOMAIN = "no_subdomain"
    FOREIGN_HOST = "foreign_host"
    INVALID_TENANT = "invalid_tenant"
    FAULT = "fault"
    TENANT = "tenant"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


class TenantMatch(Struct, frozen=True):
    reason: RouteReason
    hostname: str | None = None
    tenant: str | None = None

    @property
    def matched(self) -> bool:
        return self.tenant is not None


def normalize_host(host: str | None) -> str | None:
    """Lower-case ``host`` and strip any port suffix and trailing root dot."""

    if host is None:
        return None
    hostname = host.strip().lower()
    if hostname.startswith("["):
        end = hostname.find("]")
        return hostname[: end + 1] if end != -1 else hostname
    hostname = hostname.split(":", 1)[0].rstrip(".")
    return hostname or None


class TenantResolver:
    """Extract the tenant label from hostnames served under ``primary_domain``."""

    def __init__(
        self,
        *,
        primary_domain: str,
        min_length: int = 2,
        reserved: Iterable[str] = ("www",),
    ) -> None:
        domain = normalize_host(primary_domain)
        if not domain:
            raise ConfigError("primary_domain must not be empty")
        self.primary_domain = domain
        self.min_length = min_length
        self.reserved = frozenset(label.lower() for label in reserved)
        self._root_hosts = frozenset({domain, f"www.{domain}"})
        self._suffix = f".{domain}"
        # one label more than the primary domain itself
        self._min_labels = domain.count(".") + 2

    def resolve(self, host: str | None) -> TenantMatch:
        hostname = normalize_host(host)
        if hostname is None:
            return TenantMatch(reason=RouteReason.NO_HOST)
        if hostname in self._root_hosts:
            return TenantMatch(reason=RouteReason.ROOT_DOMAIN, hostname=hostname)
        labels = hostname.split(".")
        if len(labels) < self._min_labels:
            return TenantMatch(reason=RouteReason.NO_SUBDOMAIN, hostname=hostname)
        if not hostname.endswith(self._suffix):
            return TenantMatch(reason=RouteReason.FOREIGN_HOST, hostname=hostname)
        candidate = labels[0]
        if not candidate or candidate in self.reserved or len(candidate) < self.min_length:
            return TenantMatch(reason=RouteReason.INVALID_TENANT, hostname=hostname)
        return TenantMatch(reason=RouteReason.TENANT, hostname=hostname, tenant=candidate)

    def host_for(self, tenant: str) -> str:
        return f"{tenant.lower()}.{self.primary_domain}"
