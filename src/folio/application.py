"""Application core."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping

import msgspec

from .config import AppConfig
from .exceptions import HTTPError
from .hosts import HostRewriteMiddleware, HostRouter
from .http import Status
from .middleware import MiddlewareCallable, apply_middleware
from .observability import Observability
from .requests import Request
from .responses import (
    JSONResponse,
    PlainTextResponse,
    Response,
    apply_default_security_headers,
    exception_to_response,
    security_headers_middleware,
)
from .routing import MethodNotAllowed, RouteMatch, Router

Handler = Callable[[Request], Awaitable[Response]]
Endpoint = Callable[..., Awaitable[Any] | Any]


class FolioApp:
    """Central application object.

    Requests flow through the middleware pipeline before the route lookup, so
    the host rewrite middleware decides which endpoint serves a tenant page.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        host_router: HostRouter | None = None,
        observability: Observability | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.router = Router()
        self.observability = observability or Observability(self.config.observability)
        self.host_router = host_router or HostRouter.from_config(self.config)
        self.host_rewrite = HostRewriteMiddleware(
            self.host_router,
            observability=self.observability,
            debug_headers=self.config.emit_debug_headers,
        )
        self._middlewares: list[MiddlewareCallable] = [self.host_rewrite, security_headers_middleware]
        self._startup_hooks: list[Callable[[], Awaitable[None] | None]] = []
        self._shutdown_hooks: list[Callable[[], Awaitable[None] | None]] = []
        self._named_routes: dict[str, str] = {}

    # ------------------------------------------------------------------ routing
    def route(
        self,
        path: str,
        *,
        methods: Iterable[str],
        name: str | None = None,
    ) -> Callable[[Endpoint], Endpoint]:
        def decorator(func: Endpoint) -> Endpoint:
            self.router.add_route(path, methods=tuple(methods), endpoint=func, name=name)
            if name is not None:
                self._named_routes[name] = path
            return func

        return decorator

    def get(self, path: str, *, name: str | None = None) -> Callable[[Endpoint], Endpoint]:
        return self.route(path, methods=("GET",), name=name)

    def post(self, path: str, *, name: str | None = None) -> Callable[[Endpoint], Endpoint]:
        return self.route(path, methods=("POST",), name=name)

    def url_path_for(self, name: str, /, **params: Any) -> str:
        template = self._named_routes.get(name)
        if template is None:
            raise LookupError(f"Route {name!r} not found")
        path = template
        for key, value in params.items():
            path = path.replace(f"{{{key}}}", str(value)).replace(f"{{{key}:path}}", str(value))
        return path

    # ------------------------------------------------------------------ middleware
    def add_middleware(self, middleware: MiddlewareCallable) -> None:
        """Insert ``middleware`` after host rewriting and before security headers."""

        self._middlewares.insert(len(self._middlewares) - 1, middleware)

    # ------------------------------------------------------------------ lifecycle
    def on_startup(self, func: Callable[[], Awaitable[None] | None]) -> Callable[[], Awaitable[None] | None]:
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[[], Awaitable[None] | None]) -> Callable[[], Awaitable[None] | None]:
        self._shutdown_hooks.append(func)
        return func

    async def startup(self) -> None:
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # ------------------------------------------------------------------ request handling
    async def dispatch(
        self,
        method: str,
        path: str,
        *,
        host: str | None = None,
        query_string: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        body_loader: Callable[[], Awaitable[bytes]] | None = None,
    ) -> Response:
        request = Request(
            method=method,
            path=path,
            host=host,
            headers=headers or {},
            query_string=query_string or "",
            body=body,
            body_loader=body_loader,
        )
        handled: dict[str, Request] = {}

        async def endpoint_handler(req: Request) -> Response:
            handled["request"] = req
            try:
                match = self._match(req)
                return await self._execute_route(match, req.with_path_params(match.params))
            except HTTPError as exc:
                return exception_to_response(exc)

        observation = self.observability.on_request_start(request)
        handler = apply_middleware(self._middlewares, endpoint_handler)
        try:
            response = await handler(request)
        except HTTPError as exc:
            response = apply_default_security_headers(exception_to_response(exc))
        except Exception as exc:
            status = getattr(exc, "status", None)
            status_code = int(status) if isinstance(status, int) else int(Status.INTERNAL_SERVER_ERROR)
            self.observability.on_request_error(observation, exc, status_code=status_code)
            raise
        final = handled.get("request")
        self.observability.on_request_success(
            observation,
            response,
            tenant=final.tenant if final is not None else None,
        )
        return response

    def _match(self, request: Request) -> RouteMatch:
        try:
            return self.router.find(request.method, request.path)
        except MethodNotAllowed as exc:
            raise HTTPError(Status.METHOD_NOT_ALLOWED, {"allowed": list(exc.allowed)}) from exc
        except LookupError as exc:
            raise HTTPError(Status.NOT_FOUND, "not_found") from exc

    async def _execute_route(self, match: RouteMatch, request: Request) -> Response:
        route = match.route
        call_args: Dict[str, Any] = {}
        for name, parameter in route.signature.parameters.items():
            annotation = route.type_hints.get(name, parameter.annotation)
            if annotation is Request:
                call_args[name] = request
                continue
            if name in route.param_names:
                call_args[name] = request.path_params[name]
                continue
            if _is_struct(annotation):
                try:
                    call_args[name] = await request.json(annotation)
                except (msgspec.DecodeError, msgspec.ValidationError) as exc:
                    raise HTTPError(Status.BAD_REQUEST, {"body": str(exc)}) from exc
                continue
            if parameter.default is not inspect.Parameter.empty:
                continue
            raise HTTPError(
                Status.INTERNAL_SERVER_ERROR,
                {"parameter": name, "detail": "cannot be resolved"},
            )
        result = route.spec.endpoint(**call_args)
        if inspect.isawaitable(result):
            result = await result
        return _coerce_response(result)

    # ------------------------------------------------------------------ interface adapters
    async def __call__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[[], Awaitable[Mapping[str, Any]]],
        send: Callable[[Mapping[str, Any]], Awaitable[None]],
    ) -> None:
        scope_type = scope.get("type")
        if scope_type == "http":
            await self._handle_http(scope, receive, send)
            return
        if scope_type == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        raise RuntimeError("FolioApp only supports HTTP and lifespan scopes")

    async def _handle_lifespan(
        self,
        receive: Callable[[], Awaitable[Mapping[str, Any]]],
        send: Callable[[Mapping[str, Any]], Awaitable[None]],
    ) -> None:
        while True:
            message = await receive()
            message_type = message.get("type")
            if message_type == "lifespan.startup":
                await self.startup()
                await send({"type": "lifespan.startup.complete"})
            elif message_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _handle_http(
        self,
        scope: Mapping[str, Any],
        receive: Callable[[], Awaitable[Mapping[str, Any]]],
        send: Callable[[Mapping[str, Any]], Awaitable[None]],
    ) -> None:
        headers = {key.decode("latin-1").lower(): value.decode("latin-1") for key, value in scope.get("headers", [])}
        body_state: dict[str, Any] = {"buffer": bytearray(), "done": False}

        async def load_body() -> bytes:
            while not body_state["done"]:
                message = await receive()
                message_type = message.get("type")
                if message_type == "http.disconnect":
                    body_state["done"] = True
                    continue
                if message_type != "http.request":
                    continue
                chunk = message.get("body", b"")
                if chunk:
                    body_state["buffer"].extend(chunk)
                if not message.get("more_body", False):
                    body_state["done"] = True
            return bytes(body_state["buffer"])

        response = await self.dispatch(
            scope["method"],
            scope["path"],
            host=headers.get("host"),
            query_string=(scope.get("query_string") or b"").decode("latin-1"),
            headers=headers,
            body_loader=load_body,
        )
        await send(
            {
                "type": "http.response.start",
                "status": response.status,
                "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in response.headers],
            }
        )
        await send({"type": "http.response.body", "body": response.body})


def _is_struct(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, msgspec.Struct)


def _coerce_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(status=int(Status.NO_CONTENT), body=b"")
    if isinstance(result, str):
        return PlainTextResponse(result)
    return JSONResponse(result)
