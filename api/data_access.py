"""
Campaign data access: executes the shared WHERE clause against SQLite and
reshapes flat joined rows into the nested record shape the front end uses:

    campaign ─┬─ mandatario
              ├─ apuracoes ── premios
              ├─ situacaoHistorico
              └─ regulamentoHistorico

The list query does not load the nested collections (one query per
campaign would dominate response time); the detail query does.
"""

import logging
import sqlite3
from collections.abc import Iterable
from typing import Any

from utils.config import KnownValues
from utils.query import (
    FROM_CAMPANHA,
    CampaignFilters,
    build_pagination,
    build_where_clause,
    pagination_info,
)

logger = logging.getLogger(__name__)

_CAMPAIGN_COLUMNS = """
    c.CampanhaId, c.NumeroPromocao, c.Nome, c.Modalidade,
    c.NumeroCertificadoAutorizacao, c.CodigoAutenticidade,
    c.DataInicio, c.DataFim, c.QuantidadePremios, c.ValorTotal,
    c.QuantidadeSeries, c.AbrangenciaNacional, c.AbrangenciaEstados,
    c.SituacaoAtual, c.SituacaoAtualDataHora,
    c.RegulamentoNomeArquivoAtual, c.RegulamentoAtualDataHora,
    c.RegulamentoAtualTamanho,
    m.MandatarioId, m.Cnpj, m.NomeFantasia, m.RazaoSocial, m.Endereco,
    m.Numero, m.Complemento, m.Bairro, m.Cidade, m.Estado, m.Cep
"""

TOP_ORGANIZATIONS_LIMIT = 10


def _and(where: str, condition: str) -> str:
    """Append *condition* to a clause produced by build_where_clause."""
    return f"{where} AND {condition}" if where else f"WHERE {condition}"


def _as_date(value: Any) -> str | None:
    if not value:
        return None
    return str(value)[:10]


def _as_datetime(value: Any) -> str | None:
    if not value:
        return None
    return str(value).replace(" ", "T", 1)


def _as_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


# ── Row fetch / count ─────────────────────────────────────────────────────────

def search_campaigns(
    conn: sqlite3.Connection,
    filters: CampaignFilters,
    page: int = 1,
    limit: int = 20,
) -> list[sqlite3.Row]:
    """Return one page of joined campaign rows, newest first."""
    where, params = build_where_clause(filters)
    limit, offset = build_pagination(page, limit)
    sql = (
        f"SELECT {_CAMPAIGN_COLUMNS} {FROM_CAMPANHA} {where} "
        f"ORDER BY c.DataInicio DESC, c.CampanhaId DESC LIMIT ? OFFSET ?"
    )
    logger.debug("campaign query where=%r params=%r limit=%d offset=%d",
                 where, params, limit, offset)
    return conn.execute(sql, params + [limit, offset]).fetchall()


def count_campaigns(conn: sqlite3.Connection, filters: CampaignFilters) -> int:
    """Count campaigns matching *filters* (same WHERE as search_campaigns)."""
    where, params = build_where_clause(filters)
    return conn.execute(
        f"SELECT COUNT(*) {FROM_CAMPANHA} {where}", params
    ).fetchone()[0]


def fetch_apuracoes(conn: sqlite3.Connection, campanha_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT ApuracaoId, IdApuracao, LocalApuracao, InicioApuracao, "
        "FimApuracao, InicioParticipacao, FimParticipacao, Endereco, Numero, "
        "Complemento, Bairro, Cidade, Estado, Cep "
        "FROM Apuracao WHERE CampanhaId = ? ORDER BY IdApuracao",
        (campanha_id,),
    ).fetchall()


def fetch_premios(conn: sqlite3.Connection, apuracao_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT PremioId, Descricao, Quantidade, ValorUnitario, ValorTotal, "
        "Ordem, DataEntrega "
        "FROM Premio WHERE ApuracaoId = ? ORDER BY Ordem, Descricao",
        (apuracao_id,),
    ).fetchall()


def fetch_situacao_historico(conn: sqlite3.Connection, campanha_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT SituacaoHistoricoId, Situacao, DataHoraCriacao "
        "FROM SituacaoHistorico WHERE CampanhaId = ? "
        "ORDER BY DataHoraCriacao DESC",
        (campanha_id,),
    ).fetchall()


def fetch_regulamento_historico(conn: sqlite3.Connection, campanha_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT RegulamentoHistoricoId, RegulamentoNomeArquivo, Tamanho, "
        "DataHoraCriacao "
        "FROM RegulamentoHistorico WHERE CampanhaId = ? "
        "ORDER BY DataHoraCriacao DESC",
        (campanha_id,),
    ).fetchall()


# ── Reshaping ─────────────────────────────────────────────────────────────────

def reshape_premio(row: sqlite3.Row | dict) -> dict[str, Any]:
    return {
        "descricao": row["Descricao"],
        "quantidade": row["Quantidade"],
        "valor_unitario": _as_float(row["ValorUnitario"]),
        "valor_total": _as_float(row["ValorTotal"]),
        "ordem": None if row["Ordem"] is None else str(row["Ordem"]),
        "data_entrega": _as_date(row["DataEntrega"]),
    }


def reshape_apuracao(row: sqlite3.Row | dict, premios: Iterable = ()) -> dict[str, Any]:
    return {
        "idApuracao": row["IdApuracao"],
        "localApuracao": row["LocalApuracao"],
        "inicioApuracao": _as_datetime(row["InicioApuracao"]),
        "fimApuracao": _as_datetime(row["FimApuracao"]),
        "inicioParticipacao": _as_datetime(row["InicioParticipacao"]),
        "fimParticipacao": _as_datetime(row["FimParticipacao"]),
        "endereco": row["Endereco"],
        "numero": row["Numero"],
        "complemento": row["Complemento"],
        "bairro": row["Bairro"],
        "cidade": row["Cidade"],
        "uf": row["Estado"],
        "cep": row["Cep"],
        "premios": [reshape_premio(p) for p in premios],
    }


def reshape_campaign(
    row: sqlite3.Row | dict,
    apuracoes: Iterable[dict] = (),
    situacoes: Iterable = (),
    regulamentos: Iterable = (),
) -> dict[str, Any]:
    """Turn one flat ``Campanha ⟕ Mandatario`` row into a nested record.

    *apuracoes* are already-reshaped collection events (see
    reshape_apuracao); *situacoes* and *regulamentos* are raw history rows.
    """
    nacional = bool(row["AbrangenciaNacional"])
    return {
        "numeroPromocao": row["NumeroPromocao"],
        "nome": row["Nome"],
        "modalidade": row["Modalidade"],
        "numeroCA": row["NumeroCertificadoAutorizacao"],
        "codigoAutenticidade": row["CodigoAutenticidade"],
        "situacao": row["SituacaoAtual"],
        "dataInicio": _as_date(row["DataInicio"]),
        "dataFim": _as_date(row["DataFim"]),
        "quantidadePremios": row["QuantidadePremios"],
        "valorTotal": _as_float(row["ValorTotal"]),
        "quantidadeSeries": row["QuantidadeSeries"],
        "abrangencia": "Nacional" if nacional else row["AbrangenciaEstados"],
        "mandatario": {
            "cnpj": row["Cnpj"],
            "nomeFantasia": row["NomeFantasia"],
            "razaoSocial": row["RazaoSocial"],
            "endereco": row["Endereco"],
            "numero": row["Numero"],
            "complemento": row["Complemento"],
            "bairro": row["Bairro"],
            "cidade": row["Cidade"],
            "uf": row["Estado"],
            "cep": row["Cep"],
        },
        "apuracoes": list(apuracoes),
        "situacaoHistorico": [
            {"situacao": s["Situacao"], "dataHora": _as_datetime(s["DataHoraCriacao"])}
            for s in situacoes
        ],
        "regulamentoHistorico": [
            {
                "nomeArquivo": r["RegulamentoNomeArquivo"],
                "tamanho": r["Tamanho"],
                "dataHora": _as_datetime(r["DataHoraCriacao"]),
            }
            for r in regulamentos
        ],
    }


# ── Composite reads ───────────────────────────────────────────────────────────

def fetch_promocoes_completas(
    conn: sqlite3.Connection,
    filters: CampaignFilters,
    page: int = 1,
    limit: int = 20,
) -> dict[str, Any]:
    """Count + page of campaigns, reshaped, with pagination metadata."""
    total = count_campaigns(conn, filters)
    limit, _ = build_pagination(page, limit)
    rows = search_campaigns(conn, filters, page, limit)
    logger.info("database: %d campaigns matched, %d on page %d",
                total, len(rows), page)
    return {
        "promocoes": [reshape_campaign(r) for r in rows],
        "pagination": pagination_info(page, limit, total),
    }


def fetch_promocao_detalhe(
    conn: sqlite3.Connection, numero_promocao: str
) -> dict[str, Any] | None:
    """Return one campaign with every nested collection, or None."""
    row = conn.execute(
        f"SELECT {_CAMPAIGN_COLUMNS} {FROM_CAMPANHA} WHERE c.NumeroPromocao = ?",
        (numero_promocao,),
    ).fetchone()
    if row is None:
        return None
    campanha_id = row["CampanhaId"]
    apuracoes = [
        reshape_apuracao(a, fetch_premios(conn, a["ApuracaoId"]))
        for a in fetch_apuracoes(conn, campanha_id)
    ]
    return reshape_campaign(
        row,
        apuracoes=apuracoes,
        situacoes=fetch_situacao_historico(conn, campanha_id),
        regulamentos=fetch_regulamento_historico(conn, campanha_id),
    )


# ── Dashboard aggregates ──────────────────────────────────────────────────────

def dashboard_summary(conn: sqlite3.Connection, filters: CampaignFilters) -> dict[str, Any]:
    where, params = build_where_clause(filters)
    row = conn.execute(
        f"SELECT COUNT(*) AS totalCampanhas, "
        f"SUM(c.ValorTotal) AS valorTotal, "
        f"COUNT(DISTINCT c.AbrangenciaEstados) AS estadosAtendidos, "
        f"COUNT(DISTINCT c.MandatarioId) AS totalMandatarios "
        f"{FROM_CAMPANHA} {where}",
        params,
    ).fetchone()
    return {
        "totalCampanhas": row["totalCampanhas"] or 0,
        "valorTotal": float(row["valorTotal"] or 0),
        "estadosAtendidos": row["estadosAtendidos"] or 0,
        "totalMandatarios": row["totalMandatarios"] or 0,
    }


def campaigns_by_state(conn: sqlite3.Connection, filters: CampaignFilters) -> list[dict]:
    """Authorized campaigns grouped by coverage ("Nacional" or the state list)."""
    where, params = build_where_clause(filters, authorized_only=True)
    rows = conn.execute(
        f"SELECT CASE WHEN c.AbrangenciaNacional = 1 THEN 'Nacional' "
        f"ELSE COALESCE(c.AbrangenciaEstados, 'Não informado') END AS cobertura, "
        f"COUNT(*) AS total "
        f"{FROM_CAMPANHA} {where} "
        f"GROUP BY 1 ORDER BY total DESC, cobertura",
        params,
    ).fetchall()
    # "cobertura" rather than "estado": m.Estado would shadow the alias
    return [{"estado": r["cobertura"], "total": r["total"]} for r in rows]


def values_by_month(conn: sqlite3.Connection, filters: CampaignFilters) -> list[dict]:
    where, params = build_where_clause(filters)
    where = _and(where, "c.DataInicio IS NOT NULL")
    rows = conn.execute(
        f"SELECT CAST(strftime('%m', c.DataInicio) AS INTEGER) AS mesNum, "
        f"SUM(c.ValorTotal) AS valor, COUNT(*) AS totalCampanhas "
        f"{FROM_CAMPANHA} {where} "
        f"GROUP BY mesNum ORDER BY mesNum",
        params,
    ).fetchall()
    return [
        {
            "mes": KnownValues.MESES[r["mesNum"]],
            "mesNum": r["mesNum"],
            "valor": float(r["valor"] or 0),
            "totalCampanhas": r["totalCampanhas"],
        }
        for r in rows
        if r["mesNum"]
    ]


def campaigns_by_year(conn: sqlite3.Connection, filters: CampaignFilters) -> list[dict]:
    """Campaign counts per start year; ignores the year filter itself."""
    where, params = build_where_clause(filters, include_year=False)
    where = _and(where, "c.DataInicio IS NOT NULL")
    rows = conn.execute(
        f"SELECT CAST(strftime('%Y', c.DataInicio) AS INTEGER) AS ano, "
        f"COUNT(*) AS total "
        f"{FROM_CAMPANHA} {where} "
        f"GROUP BY ano ORDER BY ano DESC",
        params,
    ).fetchall()
    return [dict(r) for r in rows]


def top_organizations(
    conn: sqlite3.Connection,
    filters: CampaignFilters,
    limit: int = TOP_ORGANIZATIONS_LIMIT,
) -> list[dict]:
    """Mandated organizations with the most authorized campaigns."""
    where, params = build_where_clause(filters, authorized_only=True)
    where = _and(where, "m.MandatarioId IS NOT NULL")
    rows = conn.execute(
        f"SELECT m.MandatarioId AS mandatarioId, m.NomeFantasia AS nomeFantasia, "
        f"m.RazaoSocial AS razaoSocial, m.Cnpj AS cnpj, "
        f"COUNT(c.CampanhaId) AS total "
        f"{FROM_CAMPANHA} {where} "
        f"GROUP BY m.MandatarioId, m.NomeFantasia, m.RazaoSocial "
        f"ORDER BY total DESC, m.RazaoSocial LIMIT ?",
        params + [limit],
    ).fetchall()
    return [dict(r) for r in rows]


def fetch_dashboard(conn: sqlite3.Connection, filters: CampaignFilters) -> dict[str, Any]:
    """All dashboard aggregates for one filter set."""
    return {
        "summary": dashboard_summary(conn, filters),
        "estados": campaigns_by_state(conn, filters),
        "valoresPorMes": values_by_month(conn, filters),
        "campanhasPorAno": campaigns_by_year(conn, filters),
        "topCnpjs": top_organizations(conn, filters),
    }
