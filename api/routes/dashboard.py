"""Dashboard aggregates endpoint for the dashboard page."""

import copy
import logging
from typing import Any

from fastapi import APIRouter, Query

from api import sample_data
from api.charts import build_chart_series
from api.data_access import fetch_dashboard
from api.database import DatabaseUnavailable, open_connection
from api.models import DashboardResponse
from utils.cache import TTLCache
from utils.config import AppConfig
from utils.query import CampaignFilters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

_summary_cache: TTLCache = TTLCache(maxsize=32, ttl_seconds=300)
_cache_enabled: bool = True


def configure(cfg: AppConfig) -> None:
    global _summary_cache, _cache_enabled
    _summary_cache = TTLCache(maxsize=32, ttl_seconds=cfg.cache_ttl)
    _cache_enabled = cfg.cache_enabled


def get_cache() -> TTLCache:
    return _summary_cache


@router.get("", response_model=DashboardResponse, summary="Dashboard aggregates")
def dashboard(
    ano: str | None = Query(None, description="Campaign start year, e.g. '2025'"),
    tipo_abrangencia: str | None = Query(
        None, alias="tipoAbrangencia", description="'nacional' or 'estadual'"
    ),
) -> dict[str, Any]:
    """Return summary counts and chart-ready series for the dashboard page.

    Includes:
    - Totals (campaigns, value, distinct coverage values, organizations)
    - Authorized campaigns by coverage
    - Value and campaign count per start month
    - Campaign count per start year (ignores the year filter)
    - Top 10 organizations by authorized campaigns
    - ``charts``: the four series above in Chart.js shape

    Falls back to the aggregated sample record when the database is
    unavailable.
    """
    filters = CampaignFilters(ano=ano, tipo_abrangencia=tipo_abrangencia)
    cache_key = ("dashboard", ano or "", filters.tipo_abrangencia or "")
    if _cache_enabled:
        cached = _summary_cache.get(cache_key)
        if cached is not None:
            result = copy.deepcopy(cached)
            result["metadata"].update(source="cache", timestamp=sample_data.now_iso())
            return result

    try:
        with open_connection() as conn:
            result = fetch_dashboard(conn, filters)
        source = "database"
    except DatabaseUnavailable as exc:
        logger.warning("dashboard: database unavailable, using sample aggregate: %s", exc)
        result = sample_data.sample_dashboard()
        source = "sample"

    result["charts"] = build_chart_series(result)
    result["metadata"] = {
        "source": source,
        "timestamp": sample_data.now_iso(),
        "filters": {"ano": ano, "tipoAbrangencia": filters.tipo_abrangencia},
        "isSampleData": source == "sample",
    }

    if _cache_enabled and source == "database":
        _summary_cache.set(cache_key, result)
    return result
