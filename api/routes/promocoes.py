"""
Campaign list and detail endpoints.

GET /api/promocoes degrades through cache → database → SCPC API → CORS
proxy → sample data and always answers 200 once the year is present.
GET /api/promocoes/{numero} reads one campaign with its nested
collections from the database.
"""

import copy
import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from api import sample_data
from api.data_access import fetch_promocao_detalhe, fetch_promocoes_completas
from api.database import DatabaseUnavailable, open_connection
from api.models import ErrorResponse, PromocaoOut, PromocoesResponse
from api.scpc import ScpcClient, ScpcError, apply_local_filters, paginate
from utils.cache import TTLCache
from utils.config import AppConfig
from utils.query import DEFAULT_PAGE_SIZE, CampaignFilters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/promocoes", tags=["promocoes"])

_cache: TTLCache = TTLCache(maxsize=256, ttl_seconds=300)
_cache_enabled: bool = True
_scpc_enabled: bool = True
_client: ScpcClient | None = None

MISSING_YEAR_BODY = {
    "error": "Parâmetro anoPromocao é obrigatório",
    "message": "Por favor, forneça o ano da promoção",
}


def configure(cfg: AppConfig, client: ScpcClient | None = None) -> None:
    """Apply cache and SCPC settings; called by create_app()."""
    global _cache, _cache_enabled, _scpc_enabled, _client
    _cache = TTLCache(maxsize=256, ttl_seconds=cfg.cache_ttl)
    _cache_enabled = cfg.cache_enabled
    _scpc_enabled = cfg.scpc_enabled
    _client = client or ScpcClient.from_config(cfg)


def get_cache() -> TTLCache:
    return _cache


def _scpc() -> ScpcClient:
    global _client
    if _client is None:
        _client = ScpcClient()
    return _client


def cache_key(filters: CampaignFilters, page: int, limit: int) -> str:
    return "promocoes?" + urlencode(list(filters.cache_key()) + [("page", page), ("limit", limit)])


def _metadata(body: dict[str, Any], query: dict[str, Any], source: str) -> dict[str, Any]:
    return {
        "total": len(body["promocoes"]),
        "totalRecords": body["pagination"]["totalRecords"],
        "timestamp": sample_data.now_iso(),
        "query": query,
        "source": source,
    }


def _from_database(filters: CampaignFilters, page: int, limit: int, query: dict) -> dict[str, Any]:
    with open_connection() as conn:
        body = fetch_promocoes_completas(conn, filters, page, limit)
    body["metadata"] = _metadata(body, query, "database")
    return body


def _from_scpc(
    records: list[dict[str, Any]],
    filters: CampaignFilters,
    page: int,
    limit: int,
    query: dict,
    source: str,
) -> dict[str, Any]:
    filtered = apply_local_filters(records, filters) if filters.has_local_filters else records
    logger.info("%s: %d records, %d after local filters", source, len(records), len(filtered))
    body = paginate(filtered, page, limit)
    body["metadata"] = _metadata(body, query, source)
    body["metadata"]["totalOriginal"] = len(records)
    body["metadata"]["filtersApplied"] = {
        "dataInicio": bool(filters.data_inicio),
        "dataFim": bool(filters.data_fim),
        "situacao": bool(filters.situacao),
    }
    return body


def resolve_promocoes(
    filters: CampaignFilters, page: int, limit: int, query: dict[str, Any]
) -> dict[str, Any]:
    """Run the fallback chain and return the response body."""
    key = cache_key(filters, page, limit)
    if _cache_enabled:
        cached = _cache.get(key)
        if cached is not None:
            logger.info("cache hit %s", key)
            body = copy.deepcopy(cached)
            body["metadata"].update(source="cache", timestamp=sample_data.now_iso(), query=query)
            return body

    steps = [("database", lambda: _from_database(filters, page, limit, query))]
    if _scpc_enabled:
        steps += [
            ("scpc", lambda: _from_scpc(
                _scpc().fetch_with_strategy(filters), filters, page, limit, query, "scpc")),
            ("proxy", lambda: _from_scpc(
                _scpc().fetch_via_proxy(filters), filters, page, limit, query, "proxy")),
        ]

    body = None
    last_error = None
    for source, step in steps:
        try:
            body = step()
            break
        except (DatabaseUnavailable, ScpcError) as exc:
            last_error = str(exc)
            logger.warning("%s unavailable: %s", source, exc)
        except Exception as exc:
            # Bad rows or malformed upstream records must not escape the chain
            last_error = str(exc)
            logger.exception("%s failed unexpectedly", source)

    if body is None:
        return sample_data.sample_response(query, last_error or "Nenhuma fonte de dados disponível")

    if _cache_enabled:
        _cache.set(key, body)
    return body


@router.get(
    "",
    summary="List campaigns",
    responses={
        200: {"model": PromocoesResponse},
        400: {"model": ErrorResponse, "description": "anoPromocao missing"},
    },
)
def list_promocoes(
    request: Request,
    ano_promocao: str | None = Query(None, alias="anoPromocao", description="Campaign year (required)"),
    uf: str | None = Query(None, description="State of the mandated organization, e.g. SP"),
    cnpj_mandatario: str | None = Query(None, alias="cnpjMandatario", description="CNPJ, masked or digits"),
    nome_mandatario: str | None = Query(None, alias="nomeMandatario", description="Trade or legal name substring"),
    modalidade: str | None = Query(None),
    numero_certificado: str | None = Query(None, alias="numeroCertificado"),
    nome_promocao: str | None = Query(None, alias="nomePromocao", description="Campaign name substring"),
    data_inicio: str | None = Query(None, alias="dataInicio", description="YYYY-MM-DD"),
    data_fim: str | None = Query(None, alias="dataFim", description="YYYY-MM-DD"),
    situacao: str | None = Query(None),
    page: int = Query(1, description="1-based page"),
    limit: int = Query(DEFAULT_PAGE_SIZE, description="Records per page (max 1000)"),
) -> Any:
    """Filtered, paginated campaigns; never fails once the year is given."""
    filters = CampaignFilters(
        ano=ano_promocao,
        uf=uf,
        cnpj_mandatario=cnpj_mandatario,
        nome_mandatario=nome_mandatario,
        modalidade=modalidade,
        numero_certificado=numero_certificado,
        nome_promocao=nome_promocao,
        data_inicio=data_inicio,
        data_fim=data_fim,
        situacao=situacao,
    )
    if not filters.ano:
        return JSONResponse(status_code=400, content=MISSING_YEAR_BODY)

    return resolve_promocoes(filters, page, limit, dict(request.query_params))


@router.get(
    "/{numero:path}",
    summary="Campaign detail",
    responses={200: {"model": PromocaoOut}, 404: {"model": ErrorResponse}},
)
def get_promocao(numero: str) -> Any:
    """One campaign with collection events, prizes and history."""
    try:
        with open_connection() as conn:
            promocao = fetch_promocao_detalhe(conn, numero)
    except DatabaseUnavailable as exc:
        logger.warning("database unavailable for detail %s: %s", numero, exc)
        if numero == sample_data.SAMPLE_NUMERO_PROMOCAO:
            return sample_data.sample_promocoes()[0]
        raise HTTPException(
            status_code=503,
            detail={"error": "Banco de dados indisponível", "message": str(exc)},
        )

    if promocao is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "Promoção não encontrada", "message": f"Nenhuma promoção com número {numero}"},
        )
    return promocao
