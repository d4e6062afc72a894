"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics: feed latency, posts created, notifications, auth
    failures, uploads

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import Counter, Histogram

from social_api.config import settings
from social_api.database import engine

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
FEED_LATENCY = Histogram(
    "feed_latency_seconds",
    "End-to-end latency of feed assembly",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

FEED_POSTS_RETURNED = Histogram(
    "feed_posts_returned",
    "Number of posts in an assembled feed",
    buckets=[0, 1, 5, 10, 25, 50, 100, 250, 500],
)

POSTS_CREATED_TOTAL = Counter(
    "posts_created_total",
    "Total number of posts created",
)

NOTIFICATIONS_CREATED_TOTAL = Counter(
    "notifications_created_total",
    "Notifications persisted, by type",
    ["type"],  # 'follow' | 'like' | 'comment'
)

AUTH_FAILURES_TOTAL = Counter(
    "auth_failures_total",
    "Rejected authentication attempts",
    ["reason"],  # 'missing' | 'invalid' | 'credentials'
)

UPLOADS_TOTAL = Counter(
    "uploads_total",
    "Images stored in the media bucket",
    ["type"],  # 'profile' | 'post'
)


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider with OTLP/Jaeger export."""
    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    if settings.tracing_enabled:
        try:
            otlp_exporter = OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint,
                insecure=True,
            )
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            logger.info(
                "OTel tracing configured → %s", settings.otel_exporter_otlp_endpoint
            )
        except Exception as exc:
            logger.warning("Could not connect to OTLP exporter: %s — traces disabled", exc)
    else:
        logger.info("OTel export disabled; spans are recorded locally only")

    trace.set_tracer_provider(provider)

    # Auto-instrument the DB driver so query spans nest under request spans
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    FastAPIInstrumentor.instrument_app(app)
