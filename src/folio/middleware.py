"""Middleware chaining primitives."""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable, Protocol

from .requests import Request
from .responses import Response

Handler = Callable[[Request], Awaitable[Response]]


class Middleware(Protocol):
    async def __call__(self, request: Request, handler: Handler) -> Response:  # pragma: no cover - protocol
        ...


MiddlewareCallable = Callable[[Request, Handler], Awaitable[Response]]

_PipelineKey = tuple[MiddlewareCallable, ...]


def apply_middleware(middlewares: Iterable[MiddlewareCallable], endpoint: Handler) -> Handler:
    """Compose middleware into a single handler.

    The first middleware is the outermost one: it sees the request first and
    the response last.
    """

    normalized = middlewares if isinstance(middlewares, tuple) else tuple(middlewares)
    if not normalized:
        return endpoint
    return _BoundPipeline(normalized, endpoint)


class _BoundPipeline:
    __slots__ = ("_endpoint", "_middlewares")

    def __init__(self, middlewares: _PipelineKey, endpoint: Handler) -> None:
        self._middlewares = middlewares
        self._endpoint = endpoint

    async def _invoke(self, index: int, request: Request) -> Response:
        if index >= len(self._middlewares):
            return await self._endpoint(request)
        middleware = self._middlewares[index]
        return await middleware(request, _NextHandler(self, index + 1))

    async def __call__(self, request: Request) -> Response:
        return await self._invoke(0, request)


class _NextHandler:
    __slots__ = ("_index", "_pipeline")

    def __init__(self, pipeline: _BoundPipeline, index: int) -> None:
        self._pipeline = pipeline
        self._index = index

    async def __call__(self, request: Request) -> Response:
        return await self._pipeline._invoke(self._index, request)
