from __future__ import annotations

import pytest

from folio.config import AppConfig
from folio.demo import create_app
from folio.observability import ObservabilityConfig
from folio.responses import NO_STORE
from folio.serialization import json_decode
from folio.testing import TestClient

CONFIG = AppConfig(primary_domain="flavorr.in", observability=ObservabilityConfig(enabled=False))


@pytest.mark.asyncio
async def test_platform_pages_on_root_domain() -> None:
    async with TestClient(create_app(CONFIG)) as client:
        home = await client.get("/")
        dashboard = await client.get("/dashboard", host="www.flavorr.in")
    assert json_decode(home.body) == {"page": "home", "domain": "flavorr.in"}
    assert json_decode(dashboard.body) == {"page": "dashboard"}


@pytest.mark.asyncio
async def test_seeded_tenant_pages() -> None:
    async with TestClient(create_app(CONFIG)) as client:
        page = await client.get("/", tenant="alice")
        section = await client.get("/projects", tenant="alice")
        missing_section = await client.get("/blog", tenant="alice")
    body = json_decode(page.body)
    assert body["template"] == "axis"
    assert body["plan"] == "pro"
    assert page.header("cache-control") == NO_STORE
    assert json_decode(section.body)["content"] == [{"title": "Atlas", "year": 2024}]
    assert missing_section.status == 404


@pytest.mark.asyncio
async def test_tenant_host_cannot_reach_platform_pages() -> None:
    async with TestClient(create_app(CONFIG)) as client:
        response = await client.get("/dashboard", tenant="bob")
    assert response.status == 404
    assert json_decode(response.body)["error"]["detail"] == {"username": "bob", "section": "dashboard"}


@pytest.mark.asyncio
async def test_api_is_shared_by_every_host() -> None:
    async with TestClient(create_app(CONFIG)) as client:
        response = await client.get(
            "/api/links",
            tenant="alice",
            headers={"x-forwarded-proto": "http"},
        )
    assert json_decode(response.body) == {
        "origin": "http://alice.flavorr.in",
        "auth_callback": "http://alice.flavorr.in/auth/callback?next=%2Fdashboard",
        "example_tenant": "https://alice.flavorr.in/",
    }


@pytest.mark.asyncio
async def test_configuration_from_environment() -> None:
    app = create_app(environ={"FOLIO_PRIMARY_DOMAIN": "flavorr.in", "FOLIO_DEBUG": "true"})
    async with TestClient(app) as client:
        response = await client.get("/", tenant="bob")
    assert response.header("x-folio-tenant") == "bob"
    assert response.header("x-folio-rewrite-to") == "/bob"
