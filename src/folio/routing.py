"""Routing utilities."""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, MutableMapping, Sequence, get_type_hints

Endpoint = Callable[..., Awaitable[Any] | Any]


_PATH_PARAM_PATTERN = re.compile(r"{([a-zA-Z_][a-zA-Z0-9_]*)(?::([a-zA-Z_][a-zA-Z0-9_]*))?}")


@dataclass(slots=True)
class RouteSpec:
    path: str
    methods: tuple[str, ...]
    endpoint: Endpoint
    name: str | None = None


@dataclass(slots=True)
class Route:
    spec: RouteSpec
    pattern: re.Pattern[str]
    param_names: tuple[str, ...]
    signature: inspect.Signature
    type_hints: Mapping[str, Any]


@dataclass(slots=True)
class RouteMatch:
    route: Route
    params: Mapping[str, str]


class MethodNotAllowed(LookupError):
    """Raised when a path matches but not for the requested method."""

    def __init__(self, method: str, path: str, allowed: Sequence[str]) -> None:
        super().__init__(f"{method} not allowed for {path}")
        self.allowed = tuple(allowed)


class Router:
    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._routes_by_method: dict[str, list[Route]] = {}

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    def add_route(
        self,
        path: str,
        *,
        methods: Sequence[str],
        endpoint: Endpoint,
        name: str | None = None,
    ) -> Route:
        pattern, param_names = _compile_path(path)
        normalized_methods = tuple(dict.fromkeys(m.upper() for m in methods))
        spec = RouteSpec(path=path, methods=normalized_methods, endpoint=endpoint, name=name)
        route = Route(
            spec=spec,
            pattern=pattern,
            param_names=param_names,
            signature=inspect.signature(endpoint),
            type_hints=get_type_hints(endpoint),
        )
        self._routes.append(route)
        for method in normalized_methods:
            self._routes_by_method.setdefault(method, []).append(route)
        return route

    def find(self, method: str, path: str) -> RouteMatch:
        method = method.upper()
        candidates = self._routes_by_method.get(method)
        if method == "HEAD" and not candidates:
            candidates = self._routes_by_method.get("GET")
        for route in candidates or ():
            captures = route.pattern.match(path)
            if captures is None:
                continue
            params: MutableMapping[str, str] = {}
            for name in route.param_names:
                group = captures.group(name)
                if group is None:
                    continue
                params[name] = group
            return RouteMatch(route=route, params=params)
        allowed = [
            allowed_method
            for allowed_method, routes in self._routes_by_method.items()
            if any(route.pattern.match(path) for route in routes)
        ]
        if allowed:
            raise MethodNotAllowed(method, path, allowed)
        raise LookupError(f"No route matches {method} {path}")


def _compile_path(path: str) -> tuple[re.Pattern[str], tuple[str, ...]]:
    param_names: list[str] = []
    parts: list[str] = []
    cursor = 0
    for match in _PATH_PARAM_PATTERN.finditer(path):
        parts.append(re.escape(path[cursor : match.start()]))
        name = match.group(1)
        converter = match.group(2)
        param_names.append(name)
        if converter is None:
            parts.append(f"(?P<{name}>[^/]+)")
        elif converter == "path":
            parts.append(f"(?P<{name}>.*)")
        else:
            raise ValueError(f"Unsupported path converter: {converter}")
        cursor = match.end()
    parts.append(re.escape(path[cursor:]))
    return re.compile("^" + "".join(parts) + "$"), tuple(param_names)
