"""Structured logging, Prometheus metrics, tracing and error reporting."""

import logging
import time
import uuid

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from biolink.core.config import Settings, get_settings

settings = get_settings()

REQUEST_ID_HEADER = "X-Request-ID"

# HTTP
HTTP_REQUESTS = Counter(
    "biolink_http_requests_total",
    "HTTP requests by route template and status",
    ["method", "route", "status_code"],
)
HTTP_LATENCY = Histogram(
    "biolink_http_request_duration_seconds",
    "HTTP request latency by route template",
    ["method", "route"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Redirect path
REDIRECTS = Counter(
    "biolink_redirects_total",
    "Short link redirects by status and where the link was found",
    ["status_code", "source"],  # cache, database, none
)
CACHE_ERRORS = Counter(
    "biolink_link_cache_errors_total",
    "Link cache operations that failed and were treated as a miss",
    ["operation"],  # get, set, delete
)
CLICK_UPDATES = Counter(
    "biolink_click_updates_total",
    "Background click counter updates by outcome",
    ["outcome"],  # ok, missing, failed, dropped
)

# Analytics
EVENTS_INGESTED = Counter(
    "biolink_analytics_events_total",
    "Analytics events stored",
    ["event_type"],
)
OVERVIEW_DURATION = Histogram(
    "biolink_overview_duration_seconds",
    "Time to aggregate a profile overview",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


def record_redirect(status_code: int, source: str) -> None:
    REDIRECTS.labels(status_code=status_code, source=source).inc()


def record_cache_error(operation: str) -> None:
    CACHE_ERRORS.labels(operation=operation).inc()


def record_click_update(outcome: str) -> None:
    CLICK_UPDATES.labels(outcome=outcome).inc()


def record_event_ingested(event_type: str) -> None:
    EVENTS_INGESTED.labels(event_type=event_type).inc()


def record_overview_duration(duration: float) -> None:
    OVERVIEW_DURATION.observe(duration)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request id to every log line emitted while handling a request.

    An incoming ``X-Request-ID`` is reused so ids can be followed across
    services; otherwise a new one is generated. The id is echoed back in the
    response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _route_template(request: Request) -> str:
    # The matched route keeps short codes and ids out of metric labels
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each completed request and feeds the HTTP metrics."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - started

        route = _route_template(request)
        HTTP_REQUESTS.labels(request.method, route, response.status_code).inc()
        HTTP_LATENCY.labels(request.method, route).observe(duration)

        structlog.get_logger().info(
            "Request completed",
            route=route,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        return response


def configure_logging(config: Settings) -> None:
    """Route structlog and stdlib logging through one processor chain.

    JSON lines in production, coloured console output when ``debug`` is on.
    """
    renderer = (
        structlog.dev.ConsoleRenderer() if config.debug else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if config.debug else logging.INFO,
    )


def configure_tracing(app: FastAPI, config: Settings) -> None:
    """Export request spans over OTLP when an endpoint is configured."""
    if not config.otlp_endpoint:
        return

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: "biolink"}))
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=True))
    )
    trace.set_tracer_provider(provider)
    # Redirects are too hot to trace individually
    FastAPIInstrumentor.instrument_app(app, excluded_urls="/r/.*,/metrics")

    structlog.get_logger().info("Tracing enabled", otlp_endpoint=config.otlp_endpoint)


def configure_sentry(config: Settings) -> None:
    """Report unhandled errors to Sentry when a DSN is configured."""
    if not config.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=config.sentry_dsn,
        release=config.app_version,
        environment="development" if config.debug else "production",
        traces_sample_rate=0.05,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        # Client addresses are only ever stored hashed
        send_default_pii=False,
    )
    structlog.get_logger().info("Sentry enabled")


def setup_observability(app: FastAPI, config: Settings | None = None) -> None:
    """Configure logging, Sentry and tracing, and mount ``/metrics``."""
    config = config or settings
    configure_logging(config)
    configure_sentry(config)
    configure_tracing(app, config)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
