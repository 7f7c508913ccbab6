"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics: feed latency, candidate volume, taste rebuilds,
    impressions and interactions

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import Counter, Histogram

from feedrank.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
FEED_LATENCY = Histogram(
    "feed_latency_seconds",
    "End-to-end latency of feed assembly",
    ["surface"],  # 'home' | 'following' | 'explore'
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

FEED_CANDIDATES_TOTAL = Counter(
    "feed_candidates_total",
    "Total candidate items retrieved per feed request",
    ["source"],  # 'own' | 'followed' | 'explore'
)

TASTE_PROFILE_REBUILDS_TOTAL = Counter(
    "taste_profile_rebuilds_total",
    "Taste profile rebuild attempts",
    ["outcome"],  # 'rebuilt' | 'failed'
)

IMPRESSIONS_RECORDED_TOTAL = Counter(
    "impressions_recorded_total",
    "Impression submissions",
    ["result"],  # 'accepted' | 'duplicate'
)

INTERACTIONS_RECORDED_TOTAL = Counter(
    "interactions_recorded_total",
    "Interaction rows written to the ledger",
    ["type"],
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

    endpoint = settings.otel_exporter_otlp_endpoint
    if not endpoint:
        logger.info("No OTLP endpoint configured; spans are recorded but not exported")
    else:
        try:
            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
            )
            logger.info("OTel tracing configured → %s", endpoint)
        except Exception as exc:
            logger.warning("Could not connect to OTLP exporter: %s; traces disabled", exc)

    trace.set_tracer_provider(provider)

    # Auto-instrument popular libraries so their spans appear in traces
    RedisInstrumentor().instrument()
    SQLAlchemyInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    FastAPIInstrumentor.instrument_app(app)
