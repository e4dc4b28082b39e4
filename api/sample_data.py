"""Placeholder campaign served when every data source is unavailable.

The list endpoint returns this record (with ``metadata.isSampleData``)
instead of an error, and the front end shows a demonstration-mode notice.
The dashboard falls back to the same record aggregated with
``aggregate_records``.
"""

import copy
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Any

from utils.config import KnownValues

SAMPLE_NUMERO_PROMOCAO = "2025/00001"

SAMPLE_PROMOCAO: dict[str, Any] = {
    "numeroPromocao": SAMPLE_NUMERO_PROMOCAO,
    "nome": "Promoção de Exemplo - Smartphone 2025",
    "modalidade": "Sorteio",
    "numeroCA": "CA202500001",
    "codigoAutenticidade": "ABC123",
    "situacao": "AUTORIZADA",
    "dataInicio": "2025-01-01",
    "dataFim": "2025-12-31",
    "quantidadePremios": 10,
    "valorTotal": 50000.00,
    "quantidadeSeries": 1,
    "abrangencia": "SP, RJ, MG",
    "mandatario": {
        "cnpj": "12345678000195",
        "nomeFantasia": "Empresa Exemplo Ltda",
        "razaoSocial": "Empresa Exemplo de Tecnologia Ltda",
        "endereco": "Rua das Flores",
        "numero": "123",
        "complemento": "Sala 45",
        "bairro": "Centro",
        "cidade": "São Paulo",
        "uf": "SP",
        "cep": "01234567",
    },
    "apuracoes": [
        {
            "idApuracao": 1,
            "localApuracao": "Sede da Empresa",
            "inicioApuracao": "2025-12-31T14:00:00",
            "fimApuracao": "2025-12-31T16:00:00",
            "inicioParticipacao": "2025-01-01",
            "fimParticipacao": "2025-12-30",
            "premios": [
                {
                    "descricao": "Smartphone Galaxy S25",
                    "quantidade": 10,
                    "valor_unitario": 5000.00,
                    "valor_total": 50000.00,
                    "ordem": "1",
                    "data_entrega": "2026-01-15",
                }
            ],
        }
    ],
    "situacaoHistorico": [],
    "regulamentoHistorico": [],
}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sample_promocoes() -> list[dict[str, Any]]:
    """Fresh copy of the sample list (callers may mutate it)."""
    return [copy.deepcopy(SAMPLE_PROMOCAO)]


def sample_response(query: dict[str, Any], error: str | None) -> dict[str, Any]:
    promocoes = sample_promocoes()
    return {
        "promocoes": promocoes,
        "pagination": {
            "currentPage": 1,
            "totalPages": 1,
            "totalRecords": len(promocoes),
            "recordsPerPage": len(promocoes),
            "hasNextPage": False,
            "hasPrevPage": False,
        },
        "metadata": {
            "total": len(promocoes),
            "totalRecords": len(promocoes),
            "timestamp": now_iso(),
            "query": query,
            "source": "sample",
            "isSampleData": True,
            "error": error,
        },
    }


def aggregate_records(records: list[dict[str, Any]]) -> dict[str, Any]:
    """Dashboard aggregates computed in memory from nested campaign records.

    Produces the same shape as ``api.data_access.fetch_dashboard``.
    """
    authorized = [r for r in records if r.get("situacao") == KnownValues.STATUS_AUTORIZADA]

    estados = Counter(
        (r.get("abrangencia") or "Não informado") for r in authorized
    )

    meses: dict[int, dict[str, Any]] = {}
    anos: Counter = Counter()
    for r in records:
        inicio = r.get("dataInicio")
        if not inicio:
            continue
        year, month = int(inicio[:4]), int(inicio[5:7])
        anos[year] += 1
        bucket = meses.setdefault(month, {
            "mes": KnownValues.MESES[month], "mesNum": month,
            "valor": 0.0, "totalCampanhas": 0,
        })
        bucket["valor"] += float(r.get("valorTotal") or 0)
        bucket["totalCampanhas"] += 1

    orgs: dict[str, dict[str, Any]] = defaultdict(lambda: {"total": 0})
    for r in authorized:
        mandatario = r.get("mandatario") or {}
        cnpj = mandatario.get("cnpj")
        if not cnpj:
            continue
        entry = orgs[cnpj]
        entry.update(
            mandatarioId=None,
            nomeFantasia=mandatario.get("nomeFantasia"),
            razaoSocial=mandatario.get("razaoSocial"),
            cnpj=cnpj,
        )
        entry["total"] += 1

    return {
        "summary": {
            "totalCampanhas": len(records),
            "valorTotal": float(sum(float(r.get("valorTotal") or 0) for r in records)),
            "estadosAtendidos": len({r.get("abrangencia") for r in records if r.get("abrangencia")}),
            "totalMandatarios": len({
                (r.get("mandatario") or {}).get("cnpj")
                for r in records if (r.get("mandatario") or {}).get("cnpj")
            }),
        },
        "estados": [
            {"estado": estado, "total": total}
            for estado, total in sorted(estados.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
        "valoresPorMes": [meses[m] for m in sorted(meses)],
        "campanhasPorAno": [
            {"ano": ano, "total": total} for ano, total in sorted(anos.items(), reverse=True)
        ],
        "topCnpjs": sorted(orgs.values(), key=lambda o: -o["total"])[:10],
    }


def sample_dashboard() -> dict[str, Any]:
    return aggregate_records(sample_promocoes())
