"""
EventMap API — Application entry point.

Bootstraps FastAPI, wires up middleware and error handlers, registers route
groups, and manages the BigQuery client / map session lifecycle.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager

Run locally:
  uvicorn eventmap.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from eventmap import __version__
from eventmap.core.config import settings
from eventmap.core.errors import EventMapError
from eventmap.core.rate_limit import limiter
from eventmap.core.warehouse import build_warehouse_client
from eventmap.routes.dashboard import router as dashboard_router
from eventmap.routes.events import router as events_router
from eventmap.routes.health import router as health_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the warehouse client once on startup; on shutdown tear down the
    dashboard session (releasing its surface subscriptions) and the client.
    """
    logger.info("Starting EventMap API (env: %s)", settings.environment)
    app.state.warehouse = build_warehouse_client(settings)
    yield
    logger.info("Shutting down EventMap API")
    session = getattr(app.state, "overlay_session", None)
    if session is not None:
        session.close()
    app.state.warehouse.close()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="EventMap API",
    description="Recent GDELT world events from BigQuery, served as a feed and a live map.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Attach the limiter to app state so slowapi can find it.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ─── Errors ────────────────────────────────────────────────────────────────────
@app.exception_handler(EventMapError)
async def eventmap_error_handler(request: Request, exc: EventMapError) -> JSONResponse:
    """Render every recognised failure as {"error": ..., "details": ...}."""
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(events_router)
app.include_router(dashboard_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "EventMap API",
        "version": __version__,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
        "dashboard": "/dashboard",
    }
