"""
Feed Ranking API entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present (TiDB)
  3. Start Kafka producer (impression events)
  4. Connect to Redis (taste profiles)
  5. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from feedrank.config import settings
from feedrank.database import dispose_db, init_db
from feedrank.errors import FeedError
from feedrank.telemetry import setup_tracing, instrument_app
from feedrank.clients.kafka_producer import init_kafka, stop_kafka
from feedrank.clients.redis_client import close_redis, init_redis
from feedrank.routers import explore, feed, interactions

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting Feed Ranking API (env=%s)", settings.environment)

    await init_db()
    await init_kafka()
    await init_redis()

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await stop_kafka()
    await close_redis()
    await dispose_db()


app = FastAPI(
    title="Feed Ranking API",
    description=(
        "Home, following and explore feeds: multi-source retrieval, "
        "hand-tuned scoring and taste-profile personalisation."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(FeedError)
async def feed_error_handler(request: Request, exc: FeedError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(feed.router, prefix="/feed", tags=["Feed"])
app.include_router(explore.router, prefix="/explore", tags=["Explore"])
app.include_router(interactions.router, prefix="/posts", tags=["Interactions"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
# Mounted at /metrics, scraped by Prometheus
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
