"""Shared SQL query builder for campaign routes.

Provides the single WHERE clause construction used by the campaign list
query, the campaign count query and every dashboard aggregate, plus the
pagination arithmetic shared by the database and SCPC paths.
"""

import re
from dataclasses import asdict, dataclass
from typing import Any

from utils.config import KnownValues

_NON_DIGITS = re.compile(r"\D")

FROM_CAMPANHA = (
    "FROM Campanha c "
    "LEFT JOIN Mandatario m ON c.MandatarioId = m.MandatarioId"
)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 1000


def _clean(value: Any) -> str | None:
    """Return *value* as a stripped string, or None when blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_cnpj(value: Any) -> str | None:
    """Strip mask characters from a CNPJ ("12.345.678/0001-95" → digits)."""
    text = _clean(value)
    if text is None:
        return None
    digits = _NON_DIGITS.sub("", text)
    return digits or None


@dataclass(frozen=True)
class CampaignFilters:
    """Flat set of optional campaign filters.

    Field names follow Python conventions; ``from_query`` accepts the
    camelCase names used on the wire.
    """

    ano: str | None = None
    uf: str | None = None
    cnpj_mandatario: str | None = None
    nome_mandatario: str | None = None
    modalidade: str | None = None
    numero_certificado: str | None = None
    nome_promocao: str | None = None
    data_inicio: str | None = None
    data_fim: str | None = None
    situacao: str | None = None
    tipo_abrangencia: str | None = None

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            cleaned = normalize_cnpj(value) if name == "cnpj_mandatario" else _clean(value)
            object.__setattr__(self, name, cleaned)
        if self.uf:
            object.__setattr__(self, "uf", self.uf.upper())
        if self.tipo_abrangencia:
            object.__setattr__(self, "tipo_abrangencia", self.tipo_abrangencia.lower())

    @classmethod
    def from_query(cls, params: dict[str, Any]) -> "CampaignFilters":
        """Build filters from a camelCase query-string mapping."""
        return cls(
            ano=params.get("anoPromocao") or params.get("ano"),
            uf=params.get("uf"),
            cnpj_mandatario=params.get("cnpjMandatario"),
            nome_mandatario=params.get("nomeMandatario"),
            modalidade=params.get("modalidade"),
            numero_certificado=params.get("numeroCertificado"),
            nome_promocao=params.get("nomePromocao"),
            data_inicio=params.get("dataInicio"),
            data_fim=params.get("dataFim"),
            situacao=params.get("situacao"),
            tipo_abrangencia=params.get("tipoAbrangencia"),
        )

    @property
    def has_local_filters(self) -> bool:
        """True when a date range or status filter is set.

        The SCPC API does not accept these, so they are applied locally.
        """
        return bool(self.data_inicio or self.data_fim or self.situacao)

    def cache_key(self) -> tuple:
        """Sorted (queryName, value) pairs of the set filters."""
        return tuple(sorted(self.to_query_params().items()))

    def to_query_params(self) -> dict[str, str]:
        """Set filters under their camelCase query-string names."""
        params = {
            "anoPromocao": self.ano,
            "uf": self.uf,
            "cnpjMandatario": self.cnpj_mandatario,
            "nomeMandatario": self.nome_mandatario,
            "modalidade": self.modalidade,
            "numeroCertificado": self.numero_certificado,
            "nomePromocao": self.nome_promocao,
            "dataInicio": self.data_inicio,
            "dataFim": self.data_fim,
            "situacao": self.situacao,
            "tipoAbrangencia": self.tipo_abrangencia,
        }
        return {k: v for k, v in params.items() if v}

    def to_remote_params(self) -> dict[str, str]:
        """Query-string parameters understood by the SCPC export API."""
        local = ("dataInicio", "dataFim", "situacao", "tipoAbrangencia")
        return {k: v for k, v in self.to_query_params().items() if k not in local}


def build_where_clause(
    filters: CampaignFilters,
    include_year: bool = True,
    authorized_only: bool = False,
) -> tuple[str, list[Any]]:
    """Build a SQL WHERE clause over ``Campanha c``/``Mandatario m``.

    Args:
        filters: Filter values; blank values are ignored.
        include_year: Apply the year filter (the campaigns-by-year
            aggregate turns it off).
        authorized_only: Restrict to campaigns whose current status is
            AUTORIZADA (state and top-organization aggregates).

    Returns:
        Tuple of (where_clause_string, params_list). The clause starts with
        "WHERE " if any conditions exist, or is "" if none.
    """
    conditions: list[str] = []
    params: list[Any] = []

    if authorized_only:
        conditions.append("c.SituacaoAtual = ?")
        params.append(KnownValues.STATUS_AUTORIZADA)

    if include_year and filters.ano:
        conditions.append("strftime('%Y', c.DataInicio) = ?")
        params.append(filters.ano)

    if filters.uf:
        conditions.append("m.Estado = ?")
        params.append(filters.uf)

    if filters.cnpj_mandatario:
        conditions.append("m.Cnpj = ?")
        params.append(filters.cnpj_mandatario)

    if filters.nome_mandatario:
        like = f"%{filters.nome_mandatario}%"
        conditions.append("(m.NomeFantasia LIKE ? OR m.RazaoSocial LIKE ?)")
        params.extend([like, like])

    if filters.modalidade:
        conditions.append("c.Modalidade = ?")
        params.append(filters.modalidade)

    if filters.numero_certificado:
        conditions.append("c.NumeroCertificadoAutorizacao = ?")
        params.append(filters.numero_certificado)

    if filters.nome_promocao:
        conditions.append("c.Nome LIKE ?")
        params.append(f"%{filters.nome_promocao}%")

    if filters.data_inicio:
        conditions.append("date(c.DataInicio) >= ?")
        params.append(filters.data_inicio)

    if filters.data_fim:
        conditions.append("date(c.DataFim) <= ?")
        params.append(filters.data_fim)

    if filters.situacao:
        conditions.append("c.SituacaoAtual = ?")
        params.append(filters.situacao)

    if filters.tipo_abrangencia == "nacional":
        conditions.append("c.AbrangenciaNacional = 1")
    elif filters.tipo_abrangencia == "estadual":
        conditions.append("c.AbrangenciaNacional = 0")

    where = "WHERE " + " AND ".join(conditions) if conditions else ""
    return where, params


def build_pagination(page: int, limit: int) -> tuple[int, int]:
    """Return (limit, offset) for a 1-based *page*.

    Out-of-range values are clamped: page below 1 becomes 1, limit is
    kept within 1..MAX_PAGE_SIZE.
    """
    page = max(1, int(page))
    limit = min(max(1, int(limit)), MAX_PAGE_SIZE)
    return limit, (page - 1) * limit


def page_count(total: int, limit: int) -> int:
    """Ceiling of total / limit (0 when there are no records)."""
    if limit <= 0:
        return 0
    return (total + limit - 1) // limit


def pagination_info(page: int, limit: int, total: int) -> dict[str, Any]:
    """Pagination metadata block shared by every campaign source."""
    page = max(1, int(page))
    total_pages = page_count(total, limit)
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalRecords": total,
        "recordsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
