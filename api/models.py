"""
Pydantic request/response models for the API.

Wire names are camelCase (``numeroPromocao``, ``mandatario.nomeFantasia``)
to match what the front end and the SCPC export use; Python attributes are
snake_case via an alias generator. Prize fields are the exception and stay
snake_case on the wire (``valor_unitario``), as the SCPC export sends them.

Optional fields default to None so that partial rows and partial upstream
records still validate. Campaign models allow extra keys so SCPC records
pass through untouched.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _PassThroughModel(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              extra="allow")


# ── Campaign record ───────────────────────────────────────────────────────────

class MandatarioOut(_PassThroughModel):
    """Company legally responsible for a campaign."""
    cnpj: str | None = Field(None, description="CNPJ, 14 digits", examples=["12345678000195"])
    nome_fantasia: str | None = Field(None, description="Trade name", examples=["Empresa Exemplo Ltda"])
    razao_social: str | None = Field(None, description="Legal name")
    endereco: str | None = None
    numero: str | None = None
    complemento: str | None = None
    bairro: str | None = None
    cidade: str | None = None
    uf: str | None = Field(None, description="State", examples=["SP"])
    cep: str | None = None


class PremioOut(BaseModel):
    """A prize awarded at a collection event."""
    model_config = ConfigDict(extra="allow")

    descricao: str | None = Field(None, examples=["Smartphone Galaxy S25"])
    quantidade: int | None = Field(None, examples=[10])
    valor_unitario: float | None = Field(None, examples=[5000.0])
    valor_total: float | None = Field(None, examples=[50000.0])
    ordem: str | None = None
    data_entrega: str | None = Field(None, description="YYYY-MM-DD")


class ApuracaoOut(_PassThroughModel):
    """A scheduled prize drawing / verification event."""
    id_apuracao: int | None = None
    local_apuracao: str | None = None
    inicio_apuracao: str | None = None
    fim_apuracao: str | None = None
    inicio_participacao: str | None = None
    fim_participacao: str | None = None
    endereco: str | None = None
    numero: str | None = None
    complemento: str | None = None
    bairro: str | None = None
    cidade: str | None = None
    uf: str | None = None
    cep: str | None = None
    premios: list[PremioOut] = Field(default_factory=list)


class SituacaoHistoricoOut(_CamelModel):
    situacao: str | None = None
    data_hora: str | None = None


class RegulamentoHistoricoOut(_CamelModel):
    nome_arquivo: str | None = None
    tamanho: int | None = None
    data_hora: str | None = None


class PromocaoOut(_PassThroughModel):
    """One registered promotional campaign."""
    numero_promocao: str | None = Field(None, examples=["2025/00001"])
    nome: str | None = None
    modalidade: str | None = Field(None, examples=["Sorteio"])
    numero_ca: str | None = Field(None, alias="numeroCA", description="Authorization certificate number")
    codigo_autenticidade: str | None = None
    situacao: str | None = Field(None, examples=["AUTORIZADA"])
    data_inicio: str | None = Field(None, description="YYYY-MM-DD")
    data_fim: str | None = Field(None, description="YYYY-MM-DD")
    quantidade_premios: int | None = None
    valor_total: float | None = None
    quantidade_series: int | None = None
    abrangencia: str | None = Field(None, description="'Nacional' or a list of states", examples=["SP, RJ, MG"])
    mandatario: MandatarioOut | None = None
    apuracoes: list[ApuracaoOut] = Field(default_factory=list)
    situacao_historico: list[SituacaoHistoricoOut] = Field(default_factory=list)
    regulamento_historico: list[RegulamentoHistoricoOut] = Field(default_factory=list)


# ── Campaign list ─────────────────────────────────────────────────────────────

class PaginationOut(_CamelModel):
    current_page: int = Field(..., examples=[1])
    total_pages: int = Field(..., examples=[12])
    total_records: int = Field(..., examples=[231])
    records_per_page: int = Field(..., examples=[20])
    has_next_page: bool
    has_prev_page: bool


class PromocoesMetadata(_CamelModel):
    total: int = Field(..., description="Records on this page")
    total_records: int | None = Field(None, description="Records matching the filters")
    total_original: int | None = Field(None, description="SCPC records before local filtering")
    timestamp: str
    query: dict[str, Any] = Field(default_factory=dict)
    source: str = Field(..., description="cache | database | scpc | proxy | sample", examples=["database"])
    filters_applied: dict[str, bool] | None = None
    is_sample_data: bool = False
    error: str | None = None


class PromocoesResponse(_CamelModel):
    """Response body for GET /api/promocoes."""
    promocoes: list[PromocaoOut]
    pagination: PaginationOut | None = None
    metadata: PromocoesMetadata


# ── Dashboard ─────────────────────────────────────────────────────────────────

class DashboardSummary(_CamelModel):
    total_campanhas: int = 0
    valor_total: float = 0.0
    estados_atendidos: int = 0
    total_mandatarios: int = 0


class EstadoCount(_CamelModel):
    estado: str | None = None
    total: int


class ValorMes(_CamelModel):
    mes: str
    mes_num: int
    valor: float = 0.0
    total_campanhas: int = 0


class AnoCount(_CamelModel):
    ano: int | None = None
    total: int


class TopMandatario(_CamelModel):
    mandatario_id: int | None = None
    nome_fantasia: str | None = None
    razao_social: str | None = None
    cnpj: str | None = None
    total: int


class ChartDataset(_CamelModel):
    label: str
    data: list[float]


class ChartSeries(_CamelModel):
    """Chart.js-ready series: ``new Chart(ctx, {type, data: {labels, datasets}})``."""
    type: str = Field(..., examples=["doughnut"])
    labels: list[str]
    datasets: list[ChartDataset]


class DashboardResponse(_CamelModel):
    """Response body for GET /api/dashboard."""
    summary: DashboardSummary
    estados: list[EstadoCount]
    valores_por_mes: list[ValorMes]
    campanhas_por_ano: list[AnoCount]
    top_cnpjs: list[TopMandatario]
    charts: dict[str, ChartSeries] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


# ── Errors ────────────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error description", examples=["Rota não encontrada"])
    message: str | None = Field(None, description="Extended error detail")
