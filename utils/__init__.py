"""Shared utilities for the Brasil Promoções service."""

# Caching
from utils.cache import TTLCache

# Configuration
from utils.config import (
    AppConfig,
    KnownValues,
)

# Output formatting
from utils.formatting import (
    format_cnpj,
    format_count,
    format_currency,
    format_date,
    truncate_label,
)

# HTTP utilities
from utils.http import (
    RetryStrategy,
    SessionManager,
)

# Query building
from utils.query import (
    CampaignFilters,
    build_pagination,
    build_where_clause,
    normalize_cnpj,
    page_count,
    pagination_info,
)

# Database schema
from utils.schema import (
    create_schema,
)

__all__ = [
    # Cache
    "TTLCache",
    # Config
    "AppConfig",
    "KnownValues",
    # Formatting
    "format_cnpj",
    "format_count",
    "format_currency",
    "format_date",
    "truncate_label",
    # HTTP
    "RetryStrategy",
    "SessionManager",
    # Query
    "CampaignFilters",
    "build_pagination",
    "build_where_clause",
    "normalize_cnpj",
    "page_count",
    "pagination_info",
    # Schema
    "create_schema",
]
