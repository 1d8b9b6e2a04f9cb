"""Demo application wiring the platform surface and tenant pages together.

``folio serve`` boots this by default. With ``FOLIO_PRIMARY_DOMAIN=localhost``
the platform answers on ``localhost:3000`` and the seeded tenants on
``alice.localhost:3000`` and ``bob.localhost:3000``.
"""

from __future__ import annotations

from typing import Mapping

from .application import FolioApp
from .config import AppConfig
from .profiles import InMemoryProfileStore, Profile, mount_profile_pages
from .requests import Request
from .urls import auth_redirect_url, request_origin, tenant_url

DEMO_PROFILES: tuple[Profile, ...] = (
    Profile(
        username="alice",
        full_name="Alice Example",
        headline="Product designer",
        template="axis",
        plan="pro",
        sections={"projects": [{"title": "Atlas", "year": 2024}]},
    ),
    Profile(username="bob", full_name="Bob Example", headline="Backend engineer"),
)


def create_app(
    config: AppConfig | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    store: InMemoryProfileStore | None = None,
) -> FolioApp:
    app_config = config or AppConfig.from_env(environ)
    app = FolioApp(app_config)
    profiles = store if store is not None else InMemoryProfileStore(DEMO_PROFILES)

    @app.get("/", name="home")
    async def home() -> dict[str, str]:
        return {"page": "home", "domain": app_config.primary_domain}

    @app.get("/pricing", name="pricing")
    async def pricing() -> dict[str, str]:
        return {"page": "pricing"}

    @app.get("/dashboard", name="dashboard")
    async def dashboard() -> dict[str, str]:
        return {"page": "dashboard"}

    @app.get("/api/health", name="health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/links", name="links")
    async def links(request: Request) -> dict[str, str]:
        return {
            "origin": request_origin(request, app_config),
            "auth_callback": auth_redirect_url(request, app_config, next_path="/dashboard"),
            "example_tenant": tenant_url(app_config, "alice"),
        }

    mount_profile_pages(app, profiles)
    return app
