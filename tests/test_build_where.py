"""
Tests for utils.query.build_where_clause

The same clause feeds the campaign list, the campaign count and every
dashboard aggregate, so each filter is checked for its SQL fragment and
parameter, and the combined clause is executed against the real schema.
"""
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.query import FROM_CAMPANHA, CampaignFilters, build_where_clause
from utils.schema import create_schema


class TestBuildWhereFragments:
    def test_no_filters(self):
        where, params = build_where_clause(CampaignFilters())
        assert where == ""
        assert params == []

    def test_year(self):
        where, params = build_where_clause(CampaignFilters(ano="2025"))
        assert where == "WHERE strftime('%Y', c.DataInicio) = ?"
        assert params == ["2025"]

    def test_year_can_be_skipped(self):
        where, params = build_where_clause(CampaignFilters(ano="2025"), include_year=False)
        assert where == ""
        assert params == []

    def test_uf(self):
        where, params = build_where_clause(CampaignFilters(uf="rj"))
        assert "m.Estado = ?" in where
        assert params == ["RJ"]

    def test_cnpj_is_digits_only(self):
        where, params = build_where_clause(CampaignFilters(cnpj_mandatario="11.111.111/0001-11"))
        assert "m.Cnpj = ?" in where
        assert params == ["11111111000111"]

    def test_name_matches_trade_or_legal_name(self):
        where, params = build_where_clause(CampaignFilters(nome_mandatario="Alfa"))
        assert "(m.NomeFantasia LIKE ? OR m.RazaoSocial LIKE ?)" in where
        assert params == ["%Alfa%", "%Alfa%"]

    def test_modalidade(self):
        where, params = build_where_clause(CampaignFilters(modalidade="Sorteio"))
        assert "c.Modalidade = ?" in where
        assert params == ["Sorteio"]

    def test_certificate(self):
        where, params = build_where_clause(CampaignFilters(numero_certificado="CA-1"))
        assert "c.NumeroCertificadoAutorizacao = ?" in where
        assert params == ["CA-1"]

    def test_campaign_name(self):
        where, params = build_where_clause(CampaignFilters(nome_promocao="Verão"))
        assert "c.Nome LIKE ?" in where
        assert params == ["%Verão%"]

    def test_date_range(self):
        where, params = build_where_clause(
            CampaignFilters(data_inicio="2025-01-01", data_fim="2025-06-30")
        )
        assert "date(c.DataInicio) >= ?" in where
        assert "date(c.DataFim) <= ?" in where
        assert params == ["2025-01-01", "2025-06-30"]

    def test_status(self):
        where, params = build_where_clause(CampaignFilters(situacao="AUTORIZADA"))
        assert "c.SituacaoAtual = ?" in where
        assert params == ["AUTORIZADA"]

    @pytest.mark.parametrize("tipo,fragment", [
        ("nacional", "c.AbrangenciaNacional = 1"),
        ("estadual", "c.AbrangenciaNacional = 0"),
    ])
    def test_coverage(self, tipo, fragment):
        where, params = build_where_clause(CampaignFilters(tipo_abrangencia=tipo))
        assert fragment in where
        assert params == []

    def test_unknown_coverage_ignored(self):
        where, _ = build_where_clause(CampaignFilters(tipo_abrangencia="mundial"))
        assert where == ""

    def test_authorized_only_comes_first(self):
        where, params = build_where_clause(CampaignFilters(ano="2025"), authorized_only=True)
        assert where.startswith("WHERE c.SituacaoAtual = ?")
        assert params == ["AUTORIZADA", "2025"]

    def test_conditions_joined_with_and(self):
        where, params = build_where_clause(
            CampaignFilters(ano="2025", uf="SP", modalidade="Sorteio")
        )
        assert where.count(" AND ") == 2
        assert len(params) == 3


class TestBuildWhereExecutes:
    """Every combination must be valid SQL against the real schema."""

    @pytest.fixture()
    def conn(self):
        conn = sqlite3.connect(":memory:")
        create_schema(conn)
        yield conn
        conn.close()

    def test_all_filters_execute(self, conn):
        filters = CampaignFilters(
            ano="2025", uf="SP", cnpj_mandatario="11111111000111",
            nome_mandatario="Alfa", modalidade="Sorteio",
            numero_certificado="CA-1", nome_promocao="Verão",
            data_inicio="2025-01-01", data_fim="2025-12-31",
            situacao="AUTORIZADA", tipo_abrangencia="nacional",
        )
        where, params = build_where_clause(filters, authorized_only=True)
        count = conn.execute(f"SELECT COUNT(*) {FROM_CAMPANHA} {where}", params).fetchone()[0]
        assert count == 0
