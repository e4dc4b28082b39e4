"""
Frontend HTML routes.

Serves the Jinja2 templates for the campaign browser, the dashboard and a
shareable campaign page. The browser and the dashboard load their data
client-side from the JSON API (``static/js/script.js`` and
``static/js/dashboard.js``); the campaign page is rendered server-side with
the ``brl``/``cnpj``/``data_br``/``contagem`` filters.

Routes:
    GET /                   → index.html (filter form, results, detail modal)
    GET /dashboard          → dashboard.html (summary cards and Chart.js charts)
    GET /promocoes/{numero} → promocao.html (one campaign, 404 when unknown)
"""

import logging
from datetime import date

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from api import sample_data
from api.data_access import fetch_promocao_detalhe
from api.database import DatabaseUnavailable, open_connection
from utils.config import KnownValues

logger = logging.getLogger(__name__)

router = APIRouter(tags=["frontend"])

# Templates instance is set by create_app() after mounting.
_templates: Jinja2Templates | None = None


def set_templates(t: Jinja2Templates) -> None:
    global _templates
    _templates = t


def _tmpl() -> Jinja2Templates:
    if _templates is None:
        raise RuntimeError("Templates not initialised, call set_templates() first")
    return _templates


def _form_context() -> dict:
    current_year = date.today().year
    return {
        "current_year": current_year,
        "years": list(range(current_year + 1, current_year - 10, -1)),
        "ufs": KnownValues.UFS,
        "modalidades": KnownValues.MODALIDADES,
        "situacoes": KnownValues.SITUACOES,
    }


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(request: Request) -> HTMLResponse:
    """Campaign browser."""
    return _tmpl().TemplateResponse(request, "index.html", _form_context())


@router.get("/dashboard", response_class=HTMLResponse, include_in_schema=False)
def dashboard_page(request: Request) -> HTMLResponse:
    """Chart.js dashboard."""
    return _tmpl().TemplateResponse(request, "dashboard.html", _form_context())


@router.get("/promocoes/{numero:path}", response_class=HTMLResponse, include_in_schema=False)
def promocao_page(request: Request, numero: str) -> HTMLResponse:
    """Printable page for one campaign."""
    is_sample = False
    try:
        with open_connection() as conn:
            promocao = fetch_promocao_detalhe(conn, numero)
    except DatabaseUnavailable as exc:
        logger.warning("database unavailable for page %s: %s", numero, exc)
        promocao = None
        if numero == sample_data.SAMPLE_NUMERO_PROMOCAO:
            promocao = sample_data.sample_promocoes()[0]
            is_sample = True

    ctx = {"numero": numero, "promocao": promocao, "is_sample": is_sample}
    status = 200 if promocao is not None else 404
    return _tmpl().TemplateResponse(request, "promocao.html", ctx, status_code=status)
