"""Configuration management for the Brasil Promoções service.

Provides:
- ``AppConfig``, populated from environment variables
- ``KnownValues``: modalities, states, statuses and month names used by
  the filters, the SCPC client and the dashboard
"""

import os as _os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = _os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class KnownValues:
    """Reference values for promotional campaigns."""

    MODALIDADES = [
        "Sorteio",
        "Concurso",
        "Vale-Brinde",
        "Assemelhado a Sorteio",
        "Assemelhado a Concurso",
        "Assemelhado a Vale-Brinde",
    ]

    SITUACOES = [
        "AUTORIZADA",
        "EM ANÁLISE",
        "INDEFERIDA",
        "CANCELADA",
        "SUSPENSA",
        "ENCERRADA",
    ]

    UFS = [
        "AC", "AL", "AP", "AM", "BA", "CE", "DF", "ES", "GO", "MA", "MT",
        "MS", "MG", "PA", "PB", "PR", "PE", "PI", "RJ", "RN", "RS", "RO",
        "RR", "SC", "SP", "SE", "TO",
    ]

    # Index 0 unused so that MESES[1] == "Janeiro"
    MESES = [
        "", "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
        "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
    ]

    STATUS_AUTORIZADA = "AUTORIZADA"


class AppConfig:
    """Application-level configuration loaded from environment variables.

    All env vars have defaults so the application starts without any
    configuration (database missing → the SCPC API and sample data are used).

    Environment variables:
        APP_DB_PATH: Path to the SQLite database file (default: promocoes.sqlite)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_PORT: API server port (default: 3000)
        APP_ENV: "development" or "production" (default: development)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
        APP_CACHE_ENABLED: Cache campaign and dashboard responses (default: true)
        APP_CACHE_TTL: Cache entry lifetime in seconds (default: 300)
        SCPC_ENABLED: Fall back to the SCPC API when the database fails (default: true)
        SCPC_API_URL: SCPC export endpoint
        SCPC_PROXY_URL: CORS proxy prefix used as the last remote fallback
        SCPC_TIMEOUT: Request timeout in seconds (default: 30)
    """

    DEFAULT_SCPC_URL = (
        "https://api.scpc.estaleiro.serpro.gov.br"
        "/v1/promocao-comercial/export/json"
    )
    DEFAULT_PROXY_URL = "https://api.allorigins.win/get?url="

    def __init__(self) -> None:
        self.db_path = Path(_os.getenv("APP_DB_PATH", "promocoes.sqlite"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.api_port = int(_os.getenv("APP_PORT", "3000"))
        self.env = _os.getenv("APP_ENV", "development")
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )
        self.cache_enabled = _env_bool("APP_CACHE_ENABLED", True)
        self.cache_ttl = float(_os.getenv("APP_CACHE_TTL", "300"))
        self.scpc_enabled = _env_bool("SCPC_ENABLED", True)
        self.scpc_api_url = _os.getenv("SCPC_API_URL", self.DEFAULT_SCPC_URL)
        self.scpc_proxy_url = _os.getenv("SCPC_PROXY_URL", self.DEFAULT_PROXY_URL)
        self.scpc_timeout = float(_os.getenv("SCPC_TIMEOUT", "30"))

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
