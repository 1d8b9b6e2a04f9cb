"""Command line utilities for Folio."""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from typing import Callable, Sequence

from .application import FolioApp
from .config import AppConfig
from .exceptions import ConfigError
from .hosts import HostRouter
from .serialization import json_encode
from .server import ServerConfig, run

DEFAULT_APP = "folio.demo:create_app"


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper()), format="%(levelname)s %(name)s %(message)s")
    try:
        return args.func(args)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="folio", description="Folio portfolio hosting commands")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the ASGI application with granian")
    serve.add_argument("--app", default=DEFAULT_APP, help="module:factory returning a FolioApp")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)
    serve.add_argument("--workers", type=int, default=1)
    serve.set_defaults(func=_cmd_serve)

    route = sub.add_parser("route", help="Show how a host and path would be routed")
    route.add_argument("host", help="Host header value, e.g. alice.example.com:3000")
    route.add_argument("path", nargs="?", default="/", help="Request path, may include a query string")
    route.add_argument("--domain", help="Primary domain (defaults to FOLIO_PRIMARY_DOMAIN)")
    route.set_defaults(func=_cmd_route)
    return parser


def load_app(target: str) -> FolioApp:
    """Import ``module:attribute`` and return the app it names or builds."""

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ConfigError(f"App target must look like 'module:factory', got {target!r}")
    module = importlib.import_module(module_name)
    candidate: FolioApp | Callable[[], FolioApp] = getattr(module, attribute)
    if isinstance(candidate, FolioApp):
        app = candidate
    elif callable(candidate):
        app = candidate()
    else:
        raise ConfigError(f"{target!r} is neither a FolioApp nor a factory")
    if not isinstance(app, FolioApp):
        raise ConfigError(f"{target!r} did not produce a FolioApp")
    return app


def _cmd_serve(args: argparse.Namespace) -> int:
    app = load_app(args.app)
    run(app, ServerConfig(host=args.host, port=args.port, workers=args.workers))
    return 0


def _cmd_route(args: argparse.Namespace) -> int:
    overrides = {"primary_domain": args.domain} if args.domain else {}
    config = AppConfig.from_env(**overrides)
    router = HostRouter.from_config(config)
    route = router.route(args.host, args.path)
    print(json_encode(route).decode())
    return 0
