"""Public profile pages served for rewritten tenant paths.

The host router sends ``alice.example.com/projects`` here as
``/alice/projects``. This stage owns the existence check: unknown usernames
produce a ``404`` even though the router rewrote them like any other tenant.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping, Protocol

import msgspec

from .exceptions import HTTPError
from .http import Status
from .responses import JSONResponse, Response

if TYPE_CHECKING:
    from .application import FolioApp

DEFAULT_TEMPLATE = "basic"
KNOWN_TEMPLATES: frozenset[str] = frozenset({"basic", "axis", "eclipse"})


class Profile(msgspec.Struct, frozen=True):
    username: str
    full_name: str = ""
    headline: str = ""
    bio: str = ""
    template: str = DEFAULT_TEMPLATE
    plan: str = "free"
    sections: dict[str, Any] = msgspec.field(default_factory=dict)

    @property
    def resolved_template(self) -> str:
        candidate = (self.template or "").lower()
        return candidate if candidate in KNOWN_TEMPLATES else DEFAULT_TEMPLATE


class ProfileStore(Protocol):
    async def get(self, username: str) -> Profile | None:  # pragma: no cover - protocol
        ...


class InMemoryProfileStore:
    """Dictionary backed :class:`ProfileStore` keyed by lower-cased username."""

    def __init__(self, profiles: Iterable[Profile] = ()) -> None:
        self._profiles: dict[str, Profile] = {}
        for profile in profiles:
            self.add(profile)

    def add(self, profile: Profile) -> None:
        self._profiles[profile.username.lower()] = profile

    def remove(self, username: str) -> None:
        self._profiles.pop(username.lower(), None)

    async def get(self, username: str) -> Profile | None:
        return self._profiles.get(username.lower())

    def __len__(self) -> int:
        return len(self._profiles)


def render_profile(profile: Profile, *, section: str | None = None) -> Mapping[str, Any]:
    """Return the payload a template needs to draw ``profile``."""

    payload: dict[str, Any] = {
        "username": profile.username,
        "template": profile.resolved_template,
        "plan": profile.plan,
        "profile": {
            "full_name": profile.full_name,
            "headline": profile.headline,
            "bio": profile.bio,
        },
    }
    if section is None:
        payload["sections"] = profile.sections
        return payload
    if section not in profile.sections:
        raise HTTPError(Status.NOT_FOUND, {"username": profile.username, "section": section})
    payload["section"] = section
    payload["content"] = profile.sections[section]
    return payload


def mount_profile_pages(app: "FolioApp", store: ProfileStore) -> None:
    """Register the tenant page endpoints on ``app``.

    Register platform routes such as ``/dashboard`` before calling this so
    they take precedence over the ``/{username}`` catch-all.
    """

    async def _load(username: str) -> Profile:
        profile = await store.get(username)
        if profile is None:
            raise HTTPError(Status.NOT_FOUND, {"username": username, "detail": "profile_not_found"})
        return profile

    @app.get("/{username}", name="profile")
    async def profile_page(username: str) -> Response:
        profile = await _load(username)
        return JSONResponse(render_profile(profile))

    @app.get("/{username}/{section:path}", name="profile_section")
    async def profile_section(username: str, section: str) -> Response:
        profile = await _load(username)
        return JSONResponse(render_profile(profile, section=section.strip("/")))


__all__ = [
    "DEFAULT_TEMPLATE",
    "KNOWN_TEMPLATES",
    "InMemoryProfileStore",
    "Profile",
    "ProfileStore",
    "mount_profile_pages",
    "render_profile",
]
