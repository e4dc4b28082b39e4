"""
FastAPI application factory.

Usage:
    python -m api.app                    # Dev server on port 3000
    APP_DB_PATH=/data/promocoes.sqlite python -m api.app

OpenAPI docs available at http://localhost:3000/docs after starting.

Settings come from environment variables (see utils/config.py); a ``.env``
file in the working directory is loaded first.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.database import get_db_path, set_db_path
from api.routes import dashboard, meta, promocoes
from api.routes import frontend as frontend_routes
from api.scpc import ScpcClient
from utils.config import AppConfig
from utils.formatting import format_cnpj, format_count, format_currency, format_date

load_dotenv()

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "client_ip",
                    "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


_logger = logging.getLogger("brasil_promocoes_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn about a missing database on startup; close the SCPC session on exit."""
    db_path = get_db_path()
    if not db_path.exists():
        _logger.warning(
            "Database not found at %s; serving from the SCPC API or sample data. "
            "Run 'python build_promocoes_db.py' to build it.",
            db_path,
        )
    yield
    client = getattr(app.state, "scpc_client", None)
    if client is not None:
        client.close()


def _error_body(error: str, message: str | None) -> dict:
    return {"error": error, "message": message}


def create_app(
    db_path: Path | None = None,
    config: AppConfig | None = None,
    scpc_client: ScpcClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the database path (useful for testing).
        config: Override the environment-derived configuration.
        scpc_client: Override the SCPC client (tests pass a fake).

    Returns:
        Configured FastAPI application instance.
    """
    cfg = config or _cfg
    if db_path is not None:
        set_db_path(db_path)

    app = FastAPI(
        title="Brasil Promoções API",
        summary="Browse promotional campaigns registered with the SCPC.",
        description=(
            "## Brasil Promoções API\n\n"
            "Filter government-registered promotional campaigns "
            "(\"promoções comerciais\") by year, state, CNPJ, modality, "
            "date range and status.\n\n"
            "### Data sources\n"
            "Campaigns come from the local SQLite database. When it is "
            "unavailable the SCPC export API is queried directly, then "
            "through a CORS proxy, and finally a sample record is returned "
            "(`metadata.isSampleData`).\n\n"
            "### Caching\n"
            f"Responses are cached in memory for {int(cfg.cache_ttl)} seconds; "
            "`DELETE /api/cache` empties the cache."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "promocoes",
                "description": "List, filter and retrieve promotional campaigns.",
            },
            {
                "name": "dashboard",
                "description": "Summary counts and chart-ready series.",
            },
            {
                "name": "meta",
                "description": "Health check, database check and cache control.",
            },
        ],
    )

    client = scpc_client or ScpcClient.from_config(cfg)
    app.state.scpc_client = client
    app.state.config = cfg
    promocoes.configure(cfg, client)
    dashboard.configure(cfg)

    # ── CORS middleware ───────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "DELETE", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with a short request id."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "client_ip": client_ip,
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f ip=%s rid=%s",
                request.method, path, response.status_code, duration_ms,
                client_ip, request_id,
            )
        if duration_ms > 2000:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Security headers ──────────────────────────────────────────────────────

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Add Content-Security-Policy, X-Content-Type-Options, and X-Frame-Options."""
        response = await call_next(request)
        # Chart.js is loaded from jsDelivr on the dashboard page.
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' cdn.jsdelivr.net; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "font-src 'self'; "
            "connect-src 'self';"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(StarletteHTTPException)
    async def api_http_exception_handler(request: Request, exc: StarletteHTTPException):
        """JSON error bodies under /api; default handling elsewhere."""
        if not request.url.path.startswith("/api"):
            return await http_exception_handler(request, exc)
        if isinstance(exc.detail, dict):
            content = exc.detail
        elif exc.status_code == 404:
            content = _error_body(
                "Rota não encontrada",
                f"A rota {request.method} {request.url.path} não existe",
            )
        else:
            content = _error_body(str(exc.detail), None)
        return JSONResponse(status_code=exc.status_code, content=content,
                            headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = ", ".join(
            str(err["loc"][-1]) for err in exc.errors() if err.get("loc")
        )
        return JSONResponse(
            status_code=400,
            content=_error_body("Parâmetros inválidos", f"Verifique: {fields}"),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content=_error_body("Requisição inválida", str(exc)),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.exception("unhandled error on %s %s", request.method, request.url.path)
        message = "Algo deu errado" if cfg.is_production else str(exc)
        return JSONResponse(
            status_code=500,
            content=_error_body("Erro interno do servidor", message),
        )

    # ── Register routers ──────────────────────────────────────────────────────

    prefix = "/api"
    app.include_router(promocoes.router, prefix=prefix)
    app.include_router(dashboard.router, prefix=prefix)
    app.include_router(meta.router,      prefix=prefix)

    # ── Static files + Jinja2 templates ───────────────────────────────────────
    _here = Path(__file__).parent.parent  # project root

    static_dir = _here / "static"
    templates_dir = _here / "templates"

    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    if templates_dir.exists():
        templates = Jinja2Templates(directory=str(templates_dir))
        templates.env.filters["brl"] = format_currency
        templates.env.filters["cnpj"] = format_cnpj
        templates.env.filters["data_br"] = format_date
        templates.env.filters["contagem"] = format_count

        # Wire templates into the frontend router
        frontend_routes.set_templates(templates)
        app.include_router(frontend_routes.router)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=not _cfg.is_production,
        log_level="info",
    )
