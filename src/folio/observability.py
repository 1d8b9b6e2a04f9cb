"""Observability integration for Folio services."""

from __future__ import annotations

import logging
import time
from contextlib import ExitStack
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import msgspec

from .serialization import json_encode

if TYPE_CHECKING:
    from .hosts import HostRoute
    from .requests import Request
    from .responses import Response


class HostRoutingObservabilityConfig(msgspec.Struct, frozen=True):
    """Structured events and metrics emitted by the host router."""

    event_name: str = "host.route"
    fault_event_name: str = "host.route.fault"
    datadog_metric_decision: str = "folio.host_route.decisions"
    datadog_metric_error: str = "folio.host_route.errors"


class RequestObservabilityConfig(msgspec.Struct, frozen=True):
    """HTTP request metrics and tracing configuration."""

    span_name: str = "folio.request"
    datadog_metric_error: str = "folio.request.errors"
    datadog_metric_timing: str = "folio.request.duration"


class ObservabilityConfig(msgspec.Struct, frozen=True):
    """Top-level observability configuration."""

    enabled: bool = True
    log_events: bool = True
    logger_name: str = "folio.observability"
    opentelemetry_enabled: bool = True
    opentelemetry_tracer: str = "folio"
    sentry_enabled: bool = True
    sentry_capture_exceptions: bool = True
    datadog_enabled: bool = True
    datadog_tags: tuple[tuple[str, str], ...] = ()
    host_routing: HostRoutingObservabilityConfig = HostRoutingObservabilityConfig()
    request: RequestObservabilityConfig = RequestObservabilityConfig()


class _ObservationContext:
    __slots__ = (
        "datadog_tags",
        "log_fields",
        "metric_error",
        "metric_timing",
        "span",
        "stack",
        "start",
    )

    def __init__(
        self,
        *,
        start: float,
        stack: ExitStack,
        span: Any | None,
        datadog_tags: tuple[str, ...],
        metric_error: str | None,
        metric_timing: str | None,
        log_fields: Mapping[str, Any] | None = None,
    ) -> None:
        self.start = start
        self.stack = stack
        self.span = span
        self.datadog_tags = datadog_tags
        self.metric_error = metric_error
        self.metric_timing = metric_timing
        self.log_fields = dict(log_fields or {})

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.start) * 1000.0

    def close(self, error: BaseException | None = None) -> None:
        if error is None:
            self.stack.__exit__(None, None, None)
        else:
            self.stack.__exit__(type(error), error, error.__traceback__)


class Observability:
    """Coordinate structured logging, tracing, error tracking, and metrics providers."""

    def __init__(self, config: ObservabilityConfig | None = None) -> None:
        self.config = config or ObservabilityConfig()
        self._tracer = None
        self._server_span_kind = None
        self._status_cls = None
        self._status_ok = None
        self._status_error = None
        self._sentry_hub = None
        self._statsd = None
        self._logger = logging.getLogger(self.config.logger_name)
        self._base_datadog_tags = tuple(f"{key}:{value}" for key, value in self.config.datadog_tags)
        if self.config.enabled:
            self._prepare_opentelemetry()
            self._prepare_sentry()
            self._prepare_datadog()
        self._enabled = self.config.enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _prepare_opentelemetry(self) -> None:
        if not self.config.opentelemetry_enabled:
            return
        try:
            from opentelemetry import trace  # type: ignore[import-not-found]
        except ImportError:  # pragma: no cover - optional dependency
            return
        self._tracer = trace.get_tracer(self.config.opentelemetry_tracer)
        span_kind = getattr(trace, "SpanKind", None)
        self._server_span_kind = getattr(span_kind, "SERVER", None) if span_kind else None
        status_cls = getattr(trace, "Status", None)
        status_code = getattr(trace, "StatusCode", None)
        if status_cls is not None and status_code is not None:
            self._status_cls = status_cls
            self._status_ok = getattr(status_code, "OK", None)
            self._status_error = getattr(status_code, "ERROR", None)

    def _prepare_sentry(self) -> None:
        if not self.config.sentry_enabled:
            return
        try:
            import sentry_sdk  # type: ignore[import-not-found]
        except ImportError:  # pragma: no cover - optional dependency
            return
        self._sentry_hub = sentry_sdk.Hub.current

    def _prepare_datadog(self) -> None:
        if not self.config.datadog_enabled:
            return
        try:
            from datadog import statsd  # type: ignore[import-not-found]
        except ImportError:  # pragma: no cover - optional dependency
            return
        self._statsd = statsd

    def _status(self, code: Any, description: str | None = None) -> Any | None:
        if self._status_cls is None or code is None:
            return None
        if description is None:
            return self._status_cls(code)
        return self._status_cls(code, description=description)

    def _tags(self, extra: Iterable[str] = ()) -> list[str]:
        tags = list(self._base_datadog_tags)
        tags.extend(extra)
        return tags

    def _log(self, event: str, fields: Mapping[str, Any], *, level: int = logging.INFO) -> None:
        if not self._enabled or not self.config.log_events:
            return
        payload: dict[str, Any] = {"event": event}
        for key, value in fields.items():
            if value is not None:
                payload[key] = value
        self._logger.log(level, json_encode(payload).decode())

    def _capture_exception(self, error: BaseException) -> None:
        if self._sentry_hub is not None and self.config.sentry_capture_exceptions:
            self._sentry_hub.capture_exception(error)

    # ------------------------------------------------------------------ host routing
    def on_host_route(self, route: "HostRoute", *, hostname: str | None, path: str) -> None:
        if not self._enabled:
            return
        settings = self.config.host_routing
        fields: dict[str, Any] = {
            "hostname": hostname,
            "path": path,
            "decision": route.decision.value,
            "reason": route.reason.value,
            "tenant": route.tenant,
        }
        if route.rewritten:
            fields["rewrite"] = route.path
        self._log(settings.event_name, fields)
        if self._statsd is not None:
            self._statsd.increment(
                settings.datadog_metric_decision,
                tags=self._tags((f"decision:{route.decision.value}", f"reason:{route.reason.value}")),
            )

    def on_host_route_error(self, error: BaseException, *, hostname: str | None, path: str) -> None:
        if not self._enabled:
            return
        settings = self.config.host_routing
        self._log(
            settings.fault_event_name,
            {
                "hostname": hostname,
                "path": path,
                "decision": "pass_through",
                "error": type(error).__name__,
                "detail": str(error),
            },
            level=logging.ERROR,
        )
        if self._statsd is not None:
            self._statsd.increment(settings.datadog_metric_error, tags=self._tags())
        self._capture_exception(error)

    # ------------------------------------------------------------------ requests
    def on_request_start(self, request: "Request") -> _ObservationContext | None:
        if not self._enabled:
            return None
        settings = self.config.request
        stack = ExitStack()
        span = None
        attributes: dict[str, Any] = {
            "http.method": request.method,
            "http.target": request.path,
            "http.host": request.host or "",
        }
        if self._tracer is not None:
            span = stack.enter_context(
                self._tracer.start_as_current_span(settings.span_name, kind=self._server_span_kind)
            )
            for key, value in attributes.items():
                span.set_attribute(key, value)
        return _ObservationContext(
            start=time.perf_counter(),
            stack=stack,
            span=span,
            datadog_tags=tuple(self._tags((f"method:{request.method}",))),
            metric_error=settings.datadog_metric_error,
            metric_timing=settings.datadog_metric_timing,
            log_fields={"method": request.method, "path": request.path, "hostname": request.host},
        )

    def on_request_success(
        self,
        context: _ObservationContext | None,
        response: "Response",
        *,
        tenant: str | None = None,
    ) -> None:
        if context is None:
            return
        tags = list(context.datadog_tags)
        tags.append(f"status:{response.status}")
        if self._statsd is not None and context.metric_timing:
            self._statsd.timing(context.metric_timing, context.elapsed_ms(), tags=tags)
        if context.span is not None:
            context.span.set_attribute("http.status_code", response.status)
            if tenant is not None:
                context.span.set_attribute("folio.tenant", tenant)
            status = self._status(self._status_ok)
            if status is not None:
                context.span.set_status(status)
        context.close()

    def on_request_error(
        self,
        context: _ObservationContext | None,
        error: BaseException,
        *,
        status_code: int | None = None,
    ) -> None:
        if context is None:
            self._capture_exception(error)
            return
        tags = list(context.datadog_tags)
        if status_code is not None:
            tags.append(f"status:{status_code}")
        if self._statsd is not None:
            if context.metric_error:
                self._statsd.increment(context.metric_error, tags=tags)
            if context.metric_timing:
                self._statsd.timing(context.metric_timing, context.elapsed_ms(), tags=tags)
        if context.span is not None:
            if status_code is not None:
                context.span.set_attribute("http.status_code", status_code)
            if hasattr(context.span, "record_exception"):
                context.span.record_exception(error)
            status = self._status(self._status_error, description=str(error))
            if status is not None:
                context.span.set_status(status)
        self._log("request.error", {**context.log_fields, "error": type(error).__name__}, level=logging.ERROR)
        self._capture_exception(error)
        context.close(error)


__all__ = [
    "HostRoutingObservabilityConfig",
    "Observability",
    "ObservabilityConfig",
    "RequestObservabilityConfig",
]
