# bintrack/main.py
"""
FastAPI application entry point.
Includes origin allow-list, global error handlers, all routers, and the
startup/shutdown of the live telemetry pipeline.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from bintrack.routers import accounts, bins, health
from bintrack.database import create_tables
from bintrack.config import settings
from bintrack.services.pipeline import TelemetryPipeline
from bintrack.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="BinTrack API",
    description="Smart bin fill-level telemetry with live WebSocket updates.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS headers for allowed origins ────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Origin Allow-List Middleware ─────────────────────────────────────────────
class OriginAllowListMiddleware(BaseHTTPMiddleware):
    """
    Rejects browser requests from origins outside ALLOWED_ORIGINS.
    Requests without an Origin header (curl, server-to-server) pass through.
    """
    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")
        if origin is None or origin in settings.ALLOWED_ORIGINS:
            return await call_next(request)

        logger.warning(f"Rejected {request.method} {request.url.path} from origin {origin}")
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": "Not allowed by CORS"},
        )


app.add_middleware(OriginAllowListMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(bins.router,     prefix="/api", tags=["🗑️  Bins"])
app.include_router(accounts.router, prefix="/api", tags=["👤 Accounts & Support"])
app.include_router(health.router,   prefix="/api", tags=["💚 Health"])
app.add_api_websocket_route(settings.WS_PATH, bins.live_updates)


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 BinTrack backend starting up...")
    try:
        create_tables()
        logger.info("✅ Database tables ready")
    except SQLAlchemyError as e:
        # Accounts are unavailable, bin telemetry still works
        logger.error(f"❌ Database unavailable: {e}")

    app.state.pipeline = TelemetryPipeline(settings)
    await app.state.pipeline.start()
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info(f"🔴 Live updates on ws://{settings.BACKEND_IP}:{settings.BACKEND_PORT}{settings.WS_PATH}")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 BinTrack backend shutting down...")
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is not None:
        await pipeline.stop()
