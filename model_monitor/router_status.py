"""Status routes — cached model status, manual refresh, and catalog info.

Endpoints:
  GET  /api/cache           — Cached status map with cache metadata and stats
  POST /api/refresh-models  — Rediscover the catalog and probe every model
  GET  /api/models          — Catalog size and monitoring state
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .errors import RefreshCycleError
from .models import ModelsInfo, RefreshResponse

router = APIRouter(prefix="/api", tags=["status"])
logger = logging.getLogger(__name__)


def _get_monitor():
    from .main import get_monitor
    return get_monitor()


@router.get("/cache")
async def cache():
    """Serve the cached snapshot; lazy deployments refresh it first when stale."""
    monitor = _get_monitor()
    cached = await monitor.get_snapshot()

    response = JSONResponse(content=cached.model_dump(mode="json", by_alias=True))
    response.headers["Cache-Control"] = "public, max-age=30, stale-while-revalidate=60"
    response.headers["X-Cache-Age"] = str(cached.cache.cache_age)
    response.headers["X-Next-Update"] = cached.cache.next_update

    logger.info("Served cached data (age: %ds, stale: %s)", cached.cache.cache_age, cached.cache.is_stale)
    return response


@router.post("/refresh-models", response_model=RefreshResponse)
async def refresh_models():
    """Run a full discovery and probe cycle, bypassing the TTL."""
    monitor = _get_monitor()
    try:
        await monitor.force_refresh()
    except RefreshCycleError as e:
        logger.error("Error refreshing models: %s", e)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    models = monitor.catalog
    return RefreshResponse(
        success=True,
        models=models,
        count=len(models),
        message="Model list refreshed successfully",
    )


@router.get("/models", response_model=ModelsInfo)
async def models_info():
    monitor = _get_monitor()
    return ModelsInfo(
        model_count=len(monitor.catalog),
        monitoring_active=monitor.is_active(),
        last_updated=monitor.cache.snapshot().last_update,
    )
