"""
Pytest fixtures for the Brasil Promoções tests.

Provides SCPC-shaped campaign records, a temporary SQLite database built
from them with the real loader (build_promocoes_db.build_database), and a
fake SCPC client for exercising the fallback chain without network access.

Seed data at a glance:

    numero      year  status      coverage   organization        value
    2025/00010  2025  AUTORIZADA  SP         Loja Alfa (SP)      10000
    2025/00011  2025  AUTORIZADA  Nacional   Loja Alfa (SP)      20000
    2025/00012  2025  EM ANÁLISE  RJ, MG     Beta Comércio (RJ)   5000
    2024/00099  2024  AUTORIZADA  SP         Beta Comércio (RJ)   7000.5
"""

import copy
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from build_promocoes_db import build_database  # noqa: E402
from api.app import create_app  # noqa: E402
from api.scpc import ScpcError  # noqa: E402
from utils.config import AppConfig  # noqa: E402

CNPJ_ALFA = "11111111000111"
CNPJ_BETA = "22222222000122"

_MANDATARIO_ALFA = {
    "cnpj": CNPJ_ALFA,
    "nomeFantasia": "Loja Alfa",
    "razaoSocial": "Alfa Varejo Ltda",
    "endereco": "Av. Paulista",
    "numero": "1000",
    "bairro": "Bela Vista",
    "cidade": "São Paulo",
    "uf": "SP",
    "cep": "01310100",
}

_MANDATARIO_BETA = {
    "cnpj": "22.222.222/0001-22",
    "nomeFantasia": None,
    "razaoSocial": "Beta Comércio S.A.",
    "cidade": "Rio de Janeiro",
    "uf": "RJ",
}

SEED_RECORDS = [
    {
        "numeroPromocao": "2025/00010",
        "nome": "Verão Premiado",
        "modalidade": "Sorteio",
        "numeroCA": "CA-0010",
        "codigoAutenticidade": "AUT10",
        "situacao": "AUTORIZADA",
        "dataInicio": "2025-01-15",
        "dataFim": "2025-03-31",
        "quantidadePremios": 3,
        "valorTotal": 10000.0,
        "quantidadeSeries": 1,
        "abrangencia": "SP",
        "mandatario": _MANDATARIO_ALFA,
        "apuracoes": [
            {
                "idApuracao": 1,
                "localApuracao": "Sede",
                "inicioApuracao": "2025-04-01T10:00:00",
                "fimApuracao": "2025-04-01T12:00:00",
                "inicioParticipacao": "2025-01-15",
                "fimParticipacao": "2025-03-31",
                "premios": [
                    {"descricao": "TV 55", "quantidade": 1, "valor_unitario": 4000.0,
                     "valor_total": 4000.0, "ordem": "1", "data_entrega": "2025-05-01"},
                    {"descricao": "Vale-compras", "quantidade": 2, "valor_unitario": 3000.0,
                     "valor_total": 6000.0, "ordem": "2", "data_entrega": "2025-05-01"},
                ],
            }
        ],
        "situacaoHistorico": [
            {"situacao": "EM ANÁLISE", "dataHora": "2024-12-01T09:00:00"},
            {"situacao": "AUTORIZADA", "dataHora": "2024-12-20T15:30:00"},
        ],
        "regulamentoHistorico": [
            {"nomeArquivo": "regulamento_v1.pdf", "tamanho": 120000,
             "dataHora": "2024-12-01T09:00:00"},
        ],
    },
    {
        "numeroPromocao": "2025/00011",
        "nome": "Concurso Cultural Nacional",
        "modalidade": "Concurso",
        "situacao": "AUTORIZADA",
        "dataInicio": "2025-02-01",
        "dataFim": "2025-06-30",
        "quantidadePremios": 1,
        "valorTotal": 20000.0,
        "abrangencia": "Nacional",
        "mandatario": _MANDATARIO_ALFA,
    },
    {
        "numeroPromocao": "2025/00012",
        "nome": "Brinde na Compra",
        "modalidade": "Vale-Brinde",
        "situacao": "EM ANÁLISE",
        "dataInicio": "2025-02-10",
        "dataFim": "2025-12-31",
        "valorTotal": 5000.0,
        "abrangencia": "RJ, MG",
        "mandatario": _MANDATARIO_BETA,
    },
    {
        "numeroPromocao": "2024/00099",
        "nome": "Natal Beta",
        "modalidade": "Sorteio",
        "situacao": "AUTORIZADA",
        "dataInicio": "2024-11-01",
        "dataFim": "2025-01-31",
        "valorTotal": 7000.5,
        "abrangencia": "SP",
        "mandatario": _MANDATARIO_BETA,
    },
]


@pytest.fixture()
def seed_records():
    """Fresh copy of the SCPC-shaped seed records."""
    return copy.deepcopy(SEED_RECORDS)


@pytest.fixture()
def promocoes_db(tmp_path, seed_records):
    """Temporary campaign database loaded from the seed records."""
    db_path = tmp_path / "promocoes.sqlite"
    build_database(db_path, seed_records)
    return db_path


@pytest.fixture()
def missing_db(tmp_path):
    """Path to a database file that does not exist."""
    return tmp_path / "missing.sqlite"


class FakeScpcClient:
    """Stands in for api.scpc.ScpcClient in route tests."""

    def __init__(self, records=None, fail_direct=False, fail_proxy=False):
        self.records = records if records is not None else []
        self.fail_direct = fail_direct
        self.fail_proxy = fail_proxy
        self.calls: list[str] = []

    def fetch_with_strategy(self, filters):
        self.calls.append("direct")
        if self.fail_direct:
            raise ScpcError("direct unavailable")
        return copy.deepcopy(self.records)

    def fetch_via_proxy(self, filters):
        self.calls.append("proxy")
        if self.fail_proxy:
            raise ScpcError("proxy unavailable")
        return copy.deepcopy(self.records)

    def close(self):
        self.calls.append("close")


@pytest.fixture()
def fake_scpc_factory():
    """Factory for FakeScpcClient instances."""
    return FakeScpcClient


def make_config(**overrides):
    """AppConfig with test defaults; keyword arguments override attributes."""
    cfg = AppConfig()
    cfg.env = "development"
    cfg.cache_enabled = True
    cfg.scpc_enabled = True
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg


@pytest.fixture()
def make_client():
    """Build a TestClient for create_app() with a database path and fake SCPC client.

    Usage: ``client, fake = make_client(promocoes_db, records=[...], fail_direct=True)``.
    Extra keyword arguments not understood by FakeScpcClient are applied to
    the AppConfig.
    """
    def _make(db_path, records=None, fail_direct=False, fail_proxy=False, **config):
        fake = FakeScpcClient(records, fail_direct=fail_direct, fail_proxy=fail_proxy)
        app = create_app(db_path=db_path, config=make_config(**config), scpc_client=fake)
        return TestClient(app, raise_server_exceptions=False), fake
    return _make
