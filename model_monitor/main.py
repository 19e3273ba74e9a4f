"""Model Status Monitor — liveness cache for models served by an OpenAI-compatible API."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import load_overrides, settings
from .errors import RefreshCycleError
from .monitor import ModelMonitor
from .upstream_client import UpstreamClient

logger = logging.getLogger(__name__)

# Shared state populated at startup
_client: UpstreamClient | None = None
_monitor: ModelMonitor | None = None


def get_monitor() -> ModelMonitor:
    if _monitor is None:
        raise RuntimeError("Model monitor is not initialized")
    return _monitor


def build_upstream_client() -> UpstreamClient:
    return UpstreamClient(
        settings.api_base_url,
        settings.api_key,
        connect_retries=settings.connect_retries,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: init httpx pool, build the monitor, start refresh timers."""
    global _client, _monitor

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.api_key:
        logger.warning("No API key configured; probes will likely be rejected upstream")

    _client = build_upstream_client()
    await _client.start()
    _monitor = ModelMonitor(_client, settings, overrides=load_overrides())
    logger.info("Initializing Model Status Monitor (mode=%s, base=%s)", _monitor.mode, _client.base_url)
    try:
        await _monitor.start()
    except RefreshCycleError as e:
        logger.error("Failed to start background monitoring: %s", e)
    logger.info("Model Status Monitor started")

    yield

    await _monitor.stop()
    _monitor = None
    await _client.stop()
    _client = None
    logger.info("Model Status Monitor stopped")


app = FastAPI(title="Model Status Monitor", version="1.0.0", lifespan=lifespan)


# --- Error handling ---


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, httpx.ConnectError):
        return JSONResponse(status_code=503, content={"error": "Upstream unavailable", "detail": str(exc)})
    if isinstance(exc, httpx.TimeoutException):
        return JSONResponse(status_code=504, content={"error": "Upstream timeout", "detail": str(exc)})
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --- Health endpoint ---


@app.get("/health")
async def health():
    """Monitor liveness plus a summary of the cached snapshot."""
    monitor = get_monitor()
    stats = monitor.cache.stats()
    return {
        "status": "healthy" if monitor.is_active() or monitor.mode == "lazy" else "degraded",
        "monitoring": monitor.state.value,
        "refreshMode": monitor.mode,
        "models": stats.total,
        "online": stats.online,
        "cacheAge": monitor.cache.age_seconds(),
    }


# --- Mount routers ---

from .router_status import router as status_router  # noqa: E402

app.include_router(status_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("model_monitor.main:app", host=settings.host, port=settings.port)
