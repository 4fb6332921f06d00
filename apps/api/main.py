from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from apps.api.errors import register_exception_handlers
from apps.api.middlewares.metrics import MetricsMiddleware
from apps.api.routers import health, matches, swipes
from core import close_redis, engine
from core.config import settings
from core.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    configure_logging()
    yield
    # Shutdown
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Swipe Match API",
    description="Discovery feed, swipes and mutual matches",
    version="0.1.0",
    lifespan=lifespan,
)

# Middlewares
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(swipes.router)  # Already has /swipes prefix
app.include_router(matches.router)  # Already has /matches prefix


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"status": "ok", "service": "swipe-match"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("apps.api.main:app", host="0.0.0.0", port=settings.api_port)
