"""
Operational endpoints: cache inspection, health and database check.

Routes:
    GET    /api/cache/stats     keys and hit counters of both caches
    DELETE /api/cache           empty both caches
    GET    /api/health          liveness plus database reachability
    GET    /api/database/test   explicit database connectivity check
"""

import logging
import time
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api import database
from api.routes import dashboard, promocoes
from api.sample_data import now_iso

logger = logging.getLogger(__name__)

router = APIRouter(tags=["meta"])

_started_at = time.monotonic()


def _caches():
    return promocoes.get_cache(), dashboard.get_cache()


@router.get("/cache/stats", summary="Cache statistics")
def cache_stats() -> dict[str, Any]:
    keys: list[str] = []
    hits = misses = 0
    for cache in _caches():
        cache.purge_expired()
        keys.extend(str(k) for k in cache.keys())
        stats = cache.stats()
        hits += stats["hits"]
        misses += stats["misses"]
    return {
        "cacheSize": len(keys),
        "cacheKeys": keys,
        "timestamp": now_iso(),
        "hits": hits,
        "misses": misses,
    }


@router.delete("/cache", summary="Clear caches")
def clear_cache() -> dict[str, str]:
    for cache in _caches():
        cache.clear()
    logger.info("caches cleared")
    return {"message": "Cache limpo com sucesso"}


@router.get("/health", summary="Health check")
def health() -> dict[str, Any]:
    """Always 200 while the process is up; ``database`` reports reachability."""
    return {
        "status": "OK",
        "timestamp": now_iso(),
        "uptime": round(time.monotonic() - _started_at, 2),
        "database": {"connected": database.ping_database()},
        "cache": {"size": sum(len(c) for c in _caches())},
    }


@router.get("/database/test", summary="Database connectivity test")
def database_test() -> Any:
    try:
        connected = database.ping_database()
    except Exception as exc:
        logger.exception("database test failed")
        return JSONResponse(
            status_code=500,
            content={
                "connected": False,
                "message": "Erro ao testar conexão",
                "error": str(exc),
                "timestamp": now_iso(),
            },
        )
    return {
        "connected": connected,
        "message": "Conexão com banco de dados OK" if connected else "Falha na conexão com banco de dados",
        "timestamp": now_iso(),
    }
