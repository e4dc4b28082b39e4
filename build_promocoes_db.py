"""
Brasil Promoções Database Builder

Loads SCPC "promoção comercial" JSON exports into the SQLite database read
by the API. Records come from a JSON file (any envelope the export API
uses) or from a live fetch of one campaign year.

Re-running is safe: organizations are de-duplicated by CNPJ and campaigns
are upserted by campaign number, with their collection events, prizes and
history rows replaced.

Usage:
    python build_promocoes_db.py --year 2025              # Fetch 2025 from the SCPC API
    python build_promocoes_db.py --json export.json       # Load a saved export
    python build_promocoes_db.py --year 2025 --rebuild    # Recreate the database first
    python build_promocoes_db.py --db mydb.sqlite --json export.json
"""

import argparse
import json
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Any, Iterable

from api.scpc import ScpcClient, ScpcError, normalize_payload
from utils.config import AppConfig
from utils.query import CampaignFilters, normalize_cnpj
from utils.schema import create_schema

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("promocoes.sqlite")


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _number(value: Any, cast=float) -> Any:
    if value is None or value == "":
        return None
    try:
        return cast(value)
    except (TypeError, ValueError):
        return None


def _datetime(value: Any) -> str | None:
    text = _text(value)
    return text.replace(" ", "T") if text else None


def _abrangencia(value: Any) -> tuple[int, str | None]:
    """Return (AbrangenciaNacional, AbrangenciaEstados) for a record's coverage."""
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v)
    text = _text(value)
    if text and text.lower() == "nacional":
        return 1, None
    return 0, text


def upsert_mandatario(conn: sqlite3.Connection, mandatario: dict[str, Any] | None) -> int | None:
    """Insert or refresh an organization keyed by CNPJ; return its id."""
    if not mandatario:
        return None
    cnpj = normalize_cnpj(mandatario.get("cnpj"))
    if not cnpj:
        return None
    conn.execute(
        """
        INSERT INTO Mandatario (Cnpj, NomeFantasia, RazaoSocial, Endereco, Numero,
                                Complemento, Bairro, Cidade, Estado, Cep)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(Cnpj) DO UPDATE SET
            NomeFantasia = excluded.NomeFantasia,
            RazaoSocial  = excluded.RazaoSocial,
            Endereco     = excluded.Endereco,
            Numero       = excluded.Numero,
            Complemento  = excluded.Complemento,
            Bairro       = excluded.Bairro,
            Cidade       = excluded.Cidade,
            Estado       = excluded.Estado,
            Cep          = excluded.Cep
        """,
        (
            cnpj,
            _text(mandatario.get("nomeFantasia")),
            _text(mandatario.get("razaoSocial")),
            _text(mandatario.get("endereco")),
            _text(mandatario.get("numero")),
            _text(mandatario.get("complemento")),
            _text(mandatario.get("bairro")),
            _text(mandatario.get("cidade")),
            (_text(mandatario.get("uf")) or "").upper() or None,
            _text(mandatario.get("cep")),
        ),
    )
    return conn.execute(
        "SELECT MandatarioId FROM Mandatario WHERE Cnpj = ?", (cnpj,)
    ).fetchone()[0]


def _replace_children(conn: sqlite3.Connection, campanha_id: int, record: dict[str, Any]) -> None:
    conn.execute(
        "DELETE FROM Premio WHERE ApuracaoId IN "
        "(SELECT ApuracaoId FROM Apuracao WHERE CampanhaId = ?)",
        (campanha_id,),
    )
    for table in ("Apuracao", "SituacaoHistorico", "RegulamentoHistorico"):
        conn.execute(f"DELETE FROM {table} WHERE CampanhaId = ?", (campanha_id,))

    for apuracao in record.get("apuracoes") or []:
        cur = conn.execute(
            """
            INSERT INTO Apuracao (CampanhaId, IdApuracao, LocalApuracao,
                                  InicioApuracao, FimApuracao,
                                  InicioParticipacao, FimParticipacao,
                                  Endereco, Numero, Complemento, Bairro,
                                  Cidade, Estado, Cep)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                campanha_id,
                _number(apuracao.get("idApuracao"), int),
                _text(apuracao.get("localApuracao")),
                _datetime(apuracao.get("inicioApuracao")),
                _datetime(apuracao.get("fimApuracao")),
                _datetime(apuracao.get("inicioParticipacao")),
                _datetime(apuracao.get("fimParticipacao")),
                _text(apuracao.get("endereco")),
                _text(apuracao.get("numero")),
                _text(apuracao.get("complemento")),
                _text(apuracao.get("bairro")),
                _text(apuracao.get("cidade")),
                _text(apuracao.get("uf")),
                _text(apuracao.get("cep")),
            ),
        )
        conn.executemany(
            """
            INSERT INTO Premio (ApuracaoId, Descricao, Quantidade, ValorUnitario,
                                ValorTotal, Ordem, DataEntrega)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    cur.lastrowid,
                    _text(p.get("descricao")),
                    _number(p.get("quantidade"), int),
                    _number(p.get("valor_unitario")),
                    _number(p.get("valor_total")),
                    _text(p.get("ordem")),
                    _text(p.get("data_entrega")),
                )
                for p in apuracao.get("premios") or []
            ],
        )

    conn.executemany(
        "INSERT INTO SituacaoHistorico (CampanhaId, Situacao, DataHoraCriacao) VALUES (?, ?, ?)",
        [
            (campanha_id, _text(s.get("situacao")), _datetime(s.get("dataHora")))
            for s in record.get("situacaoHistorico") or []
        ],
    )
    conn.executemany(
        "INSERT INTO RegulamentoHistorico (CampanhaId, RegulamentoNomeArquivo, Tamanho, "
        "DataHoraCriacao) VALUES (?, ?, ?, ?)",
        [
            (
                campanha_id,
                _text(r.get("nomeArquivo")),
                _number(r.get("tamanho"), int),
                _datetime(r.get("dataHora")),
            )
            for r in record.get("regulamentoHistorico") or []
        ],
    )


def upsert_campanha(conn: sqlite3.Connection, record: dict[str, Any]) -> int | None:
    """Insert or replace one campaign with its nested collections.

    Returns the CampanhaId, or None when the record has no campaign number.
    """
    numero = _text(record.get("numeroPromocao"))
    if not numero:
        return None
    mandatario_id = upsert_mandatario(conn, record.get("mandatario"))
    nacional, estados = _abrangencia(record.get("abrangencia"))
    situacoes = record.get("situacaoHistorico") or []
    regulamentos = record.get("regulamentoHistorico") or []
    ultimo_regulamento = regulamentos[-1] if regulamentos else {}

    conn.execute(
        """
        INSERT INTO Campanha (MandatarioId, NumeroPromocao, Nome, Modalidade,
                              NumeroCertificadoAutorizacao, CodigoAutenticidade,
                              DataInicio, DataFim, QuantidadePremios, ValorTotal,
                              QuantidadeSeries, AbrangenciaNacional, AbrangenciaEstados,
                              SituacaoAtual, SituacaoAtualDataHora,
                              RegulamentoNomeArquivoAtual, RegulamentoAtualDataHora,
                              RegulamentoAtualTamanho)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(NumeroPromocao) DO UPDATE SET
            MandatarioId                 = excluded.MandatarioId,
            Nome                         = excluded.Nome,
            Modalidade                   = excluded.Modalidade,
            NumeroCertificadoAutorizacao = excluded.NumeroCertificadoAutorizacao,
            CodigoAutenticidade          = excluded.CodigoAutenticidade,
            DataInicio                   = excluded.DataInicio,
            DataFim                      = excluded.DataFim,
            QuantidadePremios            = excluded.QuantidadePremios,
            ValorTotal                   = excluded.ValorTotal,
            QuantidadeSeries             = excluded.QuantidadeSeries,
            AbrangenciaNacional          = excluded.AbrangenciaNacional,
            AbrangenciaEstados           = excluded.AbrangenciaEstados,
            SituacaoAtual                = excluded.SituacaoAtual,
            SituacaoAtualDataHora        = excluded.SituacaoAtualDataHora,
            RegulamentoNomeArquivoAtual  = excluded.RegulamentoNomeArquivoAtual,
            RegulamentoAtualDataHora     = excluded.RegulamentoAtualDataHora,
            RegulamentoAtualTamanho      = excluded.RegulamentoAtualTamanho
        """,
        (
            mandatario_id,
            numero,
            _text(record.get("nome")),
            _text(record.get("modalidade")),
            _text(record.get("numeroCA")),
            _text(record.get("codigoAutenticidade")),
            _datetime(record.get("dataInicio")),
            _datetime(record.get("dataFim")),
            _number(record.get("quantidadePremios"), int),
            _number(record.get("valorTotal")),
            _number(record.get("quantidadeSeries"), int),
            nacional,
            estados,
            _text(record.get("situacao")),
            _datetime(situacoes[-1].get("dataHora")) if situacoes else None,
            _text(ultimo_regulamento.get("nomeArquivo")),
            _datetime(ultimo_regulamento.get("dataHora")),
            _number(ultimo_regulamento.get("tamanho"), int),
        ),
    )
    campanha_id = conn.execute(
        "SELECT CampanhaId FROM Campanha WHERE NumeroPromocao = ?", (numero,)
    ).fetchone()[0]
    _replace_children(conn, campanha_id, record)
    return campanha_id


def load_records(conn: sqlite3.Connection, records: Iterable[dict[str, Any]]) -> dict[str, int]:
    """Upsert every record in one transaction; return load counts."""
    loaded = skipped = 0
    with conn:
        for record in records:
            if not isinstance(record, dict) or upsert_campanha(conn, record) is None:
                skipped += 1
                continue
            loaded += 1
    return {"loaded": loaded, "skipped": skipped}


def read_json_export(path: Path) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        return normalize_payload(json.load(f))


def fetch_year(year: str, client: ScpcClient | None = None) -> list[dict[str, Any]]:
    client = client or ScpcClient.from_config(AppConfig.from_env())
    try:
        return client.fetch(CampaignFilters(ano=year))
    finally:
        client.close()


def build_database(db_path: Path, records: list[dict[str, Any]], rebuild: bool = False) -> dict[str, int]:
    """Create the schema at *db_path* (optionally from scratch) and load *records*."""
    if rebuild and db_path.exists():
        db_path.unlink()
        print(f"Removed existing database for rebuild: {db_path}")
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        create_schema(conn)
        counts = load_records(conn, records)
        counts["total"] = conn.execute("SELECT COUNT(*) FROM Campanha").fetchone()[0]
    finally:
        conn.close()
    return counts


def main():
    """Parse command-line arguments and load campaigns into the database."""
    parser = argparse.ArgumentParser(description="Build the Brasil Promoções campaign database")
    parser.add_argument("--db", type=Path, default=DEFAULT_DB_PATH,
                        help=f"Database path (default: {DEFAULT_DB_PATH})")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--json", type=Path, metavar="PATH",
                        help="Load a saved SCPC JSON export")
    source.add_argument("--year", metavar="YYYY",
                        help="Fetch one campaign year from the SCPC API")
    parser.add_argument("--rebuild", action="store_true",
                        help="Delete the existing database before loading")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s %(message)s")

    try:
        records = read_json_export(args.json) if args.json else fetch_year(args.year)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except (ScpcError, ValueError) as e:
        print(f"ERROR: could not read campaigns: {e}")
        sys.exit(1)

    print(f"Read {len(records):,} campaign record(s)")
    counts = build_database(args.db, records, rebuild=args.rebuild)
    print(f"Loaded {counts['loaded']:,}, skipped {counts['skipped']:,}; "
          f"{counts['total']:,} campaign(s) in {args.db}")


if __name__ == "__main__":
    main()
