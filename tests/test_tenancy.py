from __future__ import annotations

import pytest

from folio.exceptions import ConfigError
from folio.tenancy import RouteReason, TenantResolver, normalize_host


@pytest.mark.parametrize(
    "host,expected_reason,expected_tenant",
    [
        ("acme.example.com", RouteReason.TENANT, "acme"),
        ("beta.example.com:8443", RouteReason.TENANT, "beta"),
        ("example.com", RouteReason.ROOT_DOMAIN, None),
        ("www.example.com", RouteReason.ROOT_DOMAIN, None),
        ("example.org", RouteReason.NO_SUBDOMAIN, None),
        ("acme.example.org", RouteReason.FOREIGN_HOST, None),
        ("q.example.com", RouteReason.INVALID_TENANT, None),
        (None, RouteReason.NO_HOST, None),
        ("", RouteReason.NO_HOST, None),
    ],
)
def test_tenant_resolution(host: str | None, expected_reason: RouteReason, expected_tenant: str | None) -> None:
    resolver = TenantResolver(primary_domain="example.com")
    match = resolver.resolve(host)
    assert match.reason is expected_reason
    assert match.tenant == expected_tenant
    assert match.matched is (expected_tenant is not None)


def test_resolution_records_normalised_hostname() -> None:
    resolver = TenantResolver(primary_domain="Example.com")
    match = resolver.resolve("ACME.Example.com.:443")
    assert match.hostname == "acme.example.com"
    assert match.tenant == "acme"


def test_reserved_labels_are_configurable() -> None:
    resolver = TenantResolver(primary_domain="example.com", reserved=("www", "app"))
    assert resolver.resolve("app.example.com").reason is RouteReason.INVALID_TENANT
    assert resolver.resolve("App.example.com").reason is RouteReason.INVALID_TENANT


def test_host_for() -> None:
    resolver = TenantResolver(primary_domain="example.com")
    assert resolver.host_for("Acme") == "acme.example.com"


@pytest.mark.parametrize("domain", ["", "  ", ":3000"])
def test_empty_primary_domain_rejected(domain: str) -> None:
    with pytest.raises(ConfigError):
        TenantResolver(primary_domain=domain)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Alice.Example.COM", "alice.example.com"),
        ("alice.example.com:3000", "alice.example.com"),
        ("example.com.", "example.com"),
        ("[::1]:8080", "[::1]"),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_host(raw: str | None, expected: str | None) -> None:
    assert normalize_host(raw) == expected
