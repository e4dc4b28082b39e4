"""
Chart.js series built from the dashboard aggregates.

Each builder returns ``{"type", "labels", "datasets": [{"label", "data"}]}``
so the browser can hand it to ``new Chart(ctx, {type, data})`` without
reshaping. Colors and tooltips stay in ``static/js/dashboard.js``.
"""

from typing import Any

from utils.formatting import truncate_label

TOP_STATES = 10
STATE_LABEL_CHARS = 15
ORGANIZATION_LABEL_CHARS = 30
OTHERS_LABEL = "Outros"


def _series(chart_type: str, labels: list[str], label: str, data: list[float]) -> dict[str, Any]:
    return {
        "type": chart_type,
        "labels": labels,
        "datasets": [{"label": label, "data": data}],
    }


def state_distribution(estados: list[dict[str, Any]]) -> dict[str, Any]:
    """Doughnut of the top 10 coverage values, the rest folded into "Outros"."""
    top, rest = estados[:TOP_STATES], estados[TOP_STATES:]
    labels = [
        truncate_label(e.get("estado") or "Não informado", STATE_LABEL_CHARS)
        for e in top
    ]
    data = [float(e.get("total") or 0) for e in top]
    if rest:
        labels.append(OTHERS_LABEL)
        data.append(float(sum(e.get("total") or 0 for e in rest)))
    return _series("doughnut", labels, "Campanhas", data)


def monthly_values(valores: list[dict[str, Any]]) -> dict[str, Any]:
    return _series(
        "line",
        [v["mes"] for v in valores],
        "Valor Total (R$)",
        [float(v.get("valor") or 0) for v in valores],
    )


def yearly_counts(anos: list[dict[str, Any]]) -> dict[str, Any]:
    return _series(
        "bar",
        [str(a["ano"]) for a in anos if a.get("ano") is not None],
        "Total de Campanhas",
        [float(a.get("total") or 0) for a in anos if a.get("ano") is not None],
    )


def organization_label(org: dict[str, Any]) -> str:
    """Trade name, else legal name, else CNPJ."""
    name = org.get("nomeFantasia") or org.get("razaoSocial") or org.get("cnpj") or "Sem nome"
    return truncate_label(name, ORGANIZATION_LABEL_CHARS)


def top_organizations(orgs: list[dict[str, Any]]) -> dict[str, Any]:
    """Horizontal bar; the client sets ``indexAxis: 'y'``."""
    return _series(
        "bar",
        [organization_label(o) for o in orgs],
        "Total de Campanhas",
        [float(o.get("total") or 0) for o in orgs],
    )


def build_chart_series(dashboard: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """All four chart series keyed by the canvas they feed."""
    return {
        "estados": state_distribution(dashboard.get("estados", [])),
        "valoresPorMes": monthly_values(dashboard.get("valoresPorMes", [])),
        "campanhasPorAno": yearly_counts(dashboard.get("campanhasPorAno", [])),
        "topCnpjs": top_organizations(dashboard.get("topCnpjs", [])),
    }
