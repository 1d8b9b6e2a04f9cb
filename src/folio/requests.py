"""Request primitives."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, MutableMapping, TypeVar
from urllib.parse import parse_qsl

import msgspec

from .serialization import json_decode

T = TypeVar("T")

BodyLoader = Callable[[], Awaitable[bytes]]


class Request:
    """View of an incoming request as seen by middleware and endpoints."""

    __slots__ = (
        "_body",
        "_body_loader",
        "_json_cache",
        "_query_params",
        "_raw_query",
        "headers",
        "host",
        "method",
        "original_path",
        "path",
        "path_params",
        "tenant",
    )

    def __init__(
        self,
        *,
        method: str,
        path: str,
        host: str | None = None,
        headers: Mapping[str, str] | None = None,
        path_params: Mapping[str, str] | None = None,
        query_string: str | None = None,
        body: bytes | None = None,
        body_loader: BodyLoader | None = None,
        tenant: str | None = None,
        original_path: str | None = None,
    ) -> None:
        self.method = method.upper()
        self.path = path
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.host = host if host is not None else self.headers.get("host")
        self.path_params = dict(path_params or {})
        self.tenant = tenant
        self.original_path = original_path if original_path is not None else path
        self._raw_query = query_string or ""
        self._body = body
        self._body_loader = body_loader
        self._json_cache: Any = msgspec.UNSET
        self._query_params: MutableMapping[str, list[str]] | None = None

    @property
    def query_string(self) -> str:
        return self._raw_query

    @property
    def rewritten(self) -> bool:
        return self.path != self.original_path

    @staticmethod
    def _parse_query(raw: str) -> MutableMapping[str, list[str]]:
        parsed: MutableMapping[str, list[str]] = {}
        for key, value in parse_qsl(raw, keep_blank_values=True):
            parsed.setdefault(key, []).append(value)
        return parsed

    @property
    def query_params(self) -> MutableMapping[str, list[str]]:
        if self._query_params is None:
            self._query_params = self._parse_query(self._raw_query)
        return self._query_params

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    def rewrite(self, path: str, *, tenant: str | None = None) -> "Request":
        """Return a copy routed internally to ``path``.

        Host, headers and query string are carried over untouched so the
        client-visible URL is unaffected.
        """

        if not path.startswith("/"):
            raise ValueError(f"Internal path must start with '/': {path!r}")
        return Request(
            method=self.method,
            path=path,
            host=self.host,
            headers=self.headers,
            query_string=self._raw_query,
            body=self._body,
            body_loader=self._body_loader,
            tenant=tenant if tenant is not None else self.tenant,
            original_path=self.original_path,
        )

    def with_path_params(self, params: Mapping[str, str]) -> "Request":
        self.path_params = dict(params)
        return self

    async def body(self) -> bytes:
        if self._body is None:
            self._body = await self._body_loader() if self._body_loader is not None else b""
        return self._body

    async def json(self, model: type[T] | None = None) -> T | Any:
        """Decode the JSON body using :mod:`msgspec`."""

        if self._json_cache is msgspec.UNSET:
            payload = await self.body()
            self._json_cache = json_decode(payload) if payload else None
        if model is None:
            return self._json_cache
        return msgspec.convert(self._json_cache, type=model)

    async def text(self) -> str:
        return (await self.body()).decode()
