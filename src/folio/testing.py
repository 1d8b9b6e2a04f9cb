"""Testing helpers."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlencode

from .application import FolioApp
from .responses import Response
from .serialization import json_encode


class TestClient:
    """Async test client that executes requests in-process."""

    __test__ = False

    def __init__(self, app: FolioApp, *, default_host: str | None = None) -> None:
        self.app = app
        self.default_host = default_host if default_host is not None else app.config.primary_domain

    async def __aenter__(self) -> "TestClient":
        await self.app.startup()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.app.shutdown()

    async def request(
        self,
        method: str,
        path: str,
        *,
        tenant: str | None = None,
        host: str | None = None,
        json: Any | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        omit_host: bool = False,
    ) -> Response:
        """Send a request; ``tenant`` picks ``{tenant}.{primary_domain}`` as host."""

        resolved_host: str | None
        if omit_host:
            resolved_host = None
        elif host is not None:
            resolved_host = host
        elif tenant is not None:
            resolved_host = self.app.config.tenant_host(tenant)
        else:
            resolved_host = self.default_host
        path, _, inline_query = path.partition("?")
        payload = b""
        request_headers = dict(headers or {})
        if resolved_host is not None:
            request_headers.setdefault("host", resolved_host)
        if json is not None:
            payload = json_encode(json)
            request_headers.setdefault("content-type", "application/json")
        query_string = urlencode(query or {}, doseq=True) or inline_query
        return await self.app.dispatch(
            method,
            path,
            host=resolved_host,
            query_string=query_string,
            headers=request_headers,
            body=payload,
        )

    async def get(
        self,
        path: str,
        *,
        tenant: str | None = None,
        host: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        omit_host: bool = False,
    ) -> Response:
        return await self.request(
            "GET",
            path,
            tenant=tenant,
            host=host,
            query=query,
            headers=headers,
            omit_host=omit_host,
        )

    async def post(
        self,
        path: str,
        *,
        tenant: str | None = None,
        host: str | None = None,
        json: Any | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        return await self.request("POST", path, tenant=tenant, host=host, json=json, headers=headers)
