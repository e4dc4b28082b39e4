"""
Tests for /api/promocoes — campaign list with its fallback chain, and the
campaign detail endpoint.

Fallback order under test: cache → database → SCPC API → proxy → sample.
"""
import sqlite3
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from api.sample_data import SAMPLE_NUMERO_PROMOCAO


def _numeros(body):
    return [p["numeroPromocao"] for p in body["promocoes"]]


# ── Validation ────────────────────────────────────────────────────────────────

class TestListValidation:
    def test_missing_year_is_400(self, make_client, promocoes_db):
        client, fake = make_client(promocoes_db)
        resp = client.get("/api/promocoes", params={"uf": "SP"})
        assert resp.status_code == 400
        assert resp.json() == {
            "error": "Parâmetro anoPromocao é obrigatório",
            "message": "Por favor, forneça o ano da promoção",
        }
        assert fake.calls == []

    def test_blank_year_is_400(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        assert client.get("/api/promocoes?anoPromocao=%20").status_code == 400

    def test_non_integer_page_is_400(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        resp = client.get("/api/promocoes", params={"anoPromocao": "2025", "page": "abc"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Parâmetros inválidos"


# ── Database source ───────────────────────────────────────────────────────────

class TestListFromDatabase:
    def test_year_filter(self, make_client, promocoes_db):
        client, fake = make_client(promocoes_db)
        resp = client.get("/api/promocoes", params={"anoPromocao": "2025"})
        assert resp.status_code == 200
        body = resp.json()
        assert _numeros(body) == ["2025/00012", "2025/00011", "2025/00010"]
        assert body["metadata"]["source"] == "database"
        assert body["metadata"]["total"] == 3
        assert body["metadata"]["query"] == {"anoPromocao": "2025"}
        assert body["pagination"]["totalRecords"] == 3
        assert fake.calls == []

    def test_list_rows_have_no_nested_collections(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        body = client.get("/api/promocoes", params={"anoPromocao": "2025"}).json()
        verao = next(p for p in body["promocoes"] if p["numeroPromocao"] == "2025/00010")
        assert verao["apuracoes"] == []
        assert verao["mandatario"]["nomeFantasia"] == "Loja Alfa"

    def test_pagination(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        body = client.get(
            "/api/promocoes", params={"anoPromocao": "2025", "page": 2, "limit": 1}
        ).json()
        assert _numeros(body) == ["2025/00011"]
        assert body["pagination"] == {
            "currentPage": 2,
            "totalPages": 3,
            "totalRecords": 3,
            "recordsPerPage": 1,
            "hasNextPage": True,
            "hasPrevPage": True,
        }

    def test_state_filter_is_case_insensitive(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        body = client.get("/api/promocoes", params={"anoPromocao": "2025", "uf": "sp"}).json()
        assert sorted(_numeros(body)) == ["2025/00010", "2025/00011"]

    def test_masked_cnpj_filter(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        body = client.get(
            "/api/promocoes",
            params={"anoPromocao": "2025", "cnpjMandatario": "22.222.222/0001-22"},
        ).json()
        assert _numeros(body) == ["2025/00012"]

    def test_status_and_date_filters(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        body = client.get(
            "/api/promocoes",
            params={"anoPromocao": "2025", "situacao": "AUTORIZADA", "dataFim": "2025-03-31"},
        ).json()
        assert _numeros(body) == ["2025/00010"]

    def test_no_match_is_empty_database_result(self, make_client, promocoes_db):
        client, fake = make_client(promocoes_db)
        body = client.get("/api/promocoes", params={"anoPromocao": "1999"}).json()
        assert body["promocoes"] == []
        assert body["metadata"]["source"] == "database"
        assert fake.calls == []


# ── Remote fallbacks ──────────────────────────────────────────────────────────

class TestListFallbacks:
    def test_scpc_when_database_missing(self, make_client, missing_db, seed_records):
        client, fake = make_client(missing_db, records=seed_records)
        body = client.get("/api/promocoes", params={"anoPromocao": "2025"}).json()
        assert body["metadata"]["source"] == "scpc"
        assert body["metadata"]["totalOriginal"] == 4
        assert body["metadata"]["filtersApplied"] == {
            "dataInicio": False, "dataFim": False, "situacao": False,
        }
        assert len(body["promocoes"]) == 4
        assert fake.calls == ["direct"]

    def test_scpc_records_filtered_locally(self, make_client, missing_db, seed_records):
        client, _ = make_client(missing_db, records=seed_records)
        body = client.get(
            "/api/promocoes",
            params={"anoPromocao": "2025", "situacao": "AUTORIZADA", "dataInicio": "2025-01-01"},
        ).json()
        assert sorted(_numeros(body)) == ["2025/00010", "2025/00011"]
        assert body["metadata"]["totalOriginal"] == 4
        assert body["metadata"]["filtersApplied"]["situacao"] is True
        assert body["pagination"]["totalRecords"] == 2

    def test_scpc_pagination(self, make_client, missing_db, seed_records):
        client, _ = make_client(missing_db, records=seed_records)
        body = client.get(
            "/api/promocoes", params={"anoPromocao": "2025", "page": 2, "limit": 3}
        ).json()
        assert len(body["promocoes"]) == 1
        assert body["pagination"]["totalPages"] == 2

    def test_proxy_when_scpc_fails(self, make_client, missing_db, seed_records):
        client, fake = make_client(missing_db, records=seed_records, fail_direct=True)
        body = client.get("/api/promocoes", params={"anoPromocao": "2025"}).json()
        assert body["metadata"]["source"] == "proxy"
        assert fake.calls == ["direct", "proxy"]

    def test_sample_when_everything_fails(self, make_client, missing_db):
        client, fake = make_client(missing_db, fail_direct=True, fail_proxy=True)
        resp = client.get("/api/promocoes", params={"anoPromocao": "2025"})
        assert resp.status_code == 200
        body = resp.json()
        assert _numeros(body) == [SAMPLE_NUMERO_PROMOCAO]
        assert body["metadata"]["isSampleData"] is True
        assert body["metadata"]["source"] == "sample"
        assert body["metadata"]["error"] == "proxy unavailable"

    def test_scpc_disabled_goes_straight_to_sample(self, make_client, missing_db, seed_records):
        client, fake = make_client(missing_db, records=seed_records, scpc_enabled=False)
        body = client.get("/api/promocoes", params={"anoPromocao": "2025"}).json()
        assert body["metadata"]["isSampleData"] is True
        assert "Database not found" in body["metadata"]["error"]
        assert fake.calls == []

    def test_database_without_tables_falls_back(self, make_client, tmp_path, seed_records):
        empty = tmp_path / "empty.sqlite"
        empty.write_bytes(b"")
        client, fake = make_client(empty, records=seed_records)
        body = client.get("/api/promocoes", params={"anoPromocao": "2025"}).json()
        assert body["metadata"]["source"] == "scpc"
        assert fake.calls == ["direct"]


class TestListUnexpectedFailures:
    """Errors other than an unavailable source still move down the chain."""

    @staticmethod
    def _corrupt_value(db_path):
        conn = sqlite3.connect(str(db_path))
        conn.execute("UPDATE Campanha SET ValorTotal = 'n/d' WHERE NumeroPromocao = '2025/00010'")
        conn.commit()
        conn.close()

    def test_bad_database_value_falls_back_to_scpc(self, make_client, promocoes_db, seed_records):
        self._corrupt_value(promocoes_db)
        client, fake = make_client(promocoes_db, records=seed_records)
        resp = client.get("/api/promocoes", params={"anoPromocao": "2025"})
        assert resp.status_code == 200
        assert resp.json()["metadata"]["source"] == "scpc"
        assert fake.calls == ["direct"]

    def test_bad_database_value_with_remote_down_serves_sample(self, make_client, promocoes_db):
        self._corrupt_value(promocoes_db)
        client, _ = make_client(promocoes_db, fail_direct=True, fail_proxy=True)
        resp = client.get("/api/promocoes", params={"anoPromocao": "2025"})
        assert resp.status_code == 200
        assert resp.json()["metadata"]["isSampleData"] is True

    def test_malformed_remote_records_serve_sample(self, make_client, missing_db):
        client, fake = make_client(missing_db, records=["Ano inválido"])
        resp = client.get(
            "/api/promocoes", params={"anoPromocao": "2025", "situacao": "AUTORIZADA"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["metadata"]["isSampleData"] is True
        assert _numeros(body) == [SAMPLE_NUMERO_PROMOCAO]
        assert fake.calls == ["direct", "proxy"]


# ── Cache ─────────────────────────────────────────────────────────────────────

class TestListCache:
    def test_second_request_served_from_cache(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        params = {"anoPromocao": "2025"}
        first = client.get("/api/promocoes", params=params).json()
        second = client.get("/api/promocoes", params=params).json()
        assert first["metadata"]["source"] == "database"
        assert second["metadata"]["source"] == "cache"
        assert _numeros(second) == _numeros(first)

    def test_different_page_is_a_different_entry(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        client.get("/api/promocoes", params={"anoPromocao": "2025", "limit": 1})
        body = client.get(
            "/api/promocoes", params={"anoPromocao": "2025", "limit": 1, "page": 2}
        ).json()
        assert body["metadata"]["source"] == "database"

    def test_scpc_results_cached(self, make_client, missing_db, seed_records):
        client, fake = make_client(missing_db, records=seed_records)
        client.get("/api/promocoes", params={"anoPromocao": "2025"})
        body = client.get("/api/promocoes", params={"anoPromocao": "2025"}).json()
        assert body["metadata"]["source"] == "cache"
        assert fake.calls == ["direct"]

    def test_sample_data_not_cached(self, make_client, missing_db):
        client, fake = make_client(missing_db, fail_direct=True, fail_proxy=True)
        client.get("/api/promocoes", params={"anoPromocao": "2025"})
        body = client.get("/api/promocoes", params={"anoPromocao": "2025"}).json()
        assert body["metadata"]["source"] == "sample"
        assert fake.calls == ["direct", "proxy", "direct", "proxy"]

    def test_cache_disabled(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db, cache_enabled=False)
        client.get("/api/promocoes", params={"anoPromocao": "2025"})
        body = client.get("/api/promocoes", params={"anoPromocao": "2025"}).json()
        assert body["metadata"]["source"] == "database"


# ── Detail ────────────────────────────────────────────────────────────────────

class TestDetail:
    def test_nested_record(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        resp = client.get("/api/promocoes/2025/00010")
        assert resp.status_code == 200
        body = resp.json()
        assert body["nome"] == "Verão Premiado"
        assert len(body["apuracoes"]) == 1
        assert [p["descricao"] for p in body["apuracoes"][0]["premios"]] == ["TV 55", "Vale-compras"]
        assert body["situacaoHistorico"][0]["situacao"] == "AUTORIZADA"
        assert body["regulamentoHistorico"][0]["nomeArquivo"] == "regulamento_v1.pdf"

    def test_unknown_number_is_404(self, make_client, promocoes_db):
        client, _ = make_client(promocoes_db)
        resp = client.get("/api/promocoes/2030/99999")
        assert resp.status_code == 404
        assert resp.json() == {
            "error": "Promoção não encontrada",
            "message": "Nenhuma promoção com número 2030/99999",
        }

    def test_sample_number_without_database(self, make_client, missing_db):
        client, _ = make_client(missing_db)
        resp = client.get(f"/api/promocoes/{SAMPLE_NUMERO_PROMOCAO}")
        assert resp.status_code == 200
        assert resp.json()["numeroPromocao"] == SAMPLE_NUMERO_PROMOCAO

    def test_other_number_without_database_is_503(self, make_client, missing_db):
        client, _ = make_client(missing_db)
        resp = client.get("/api/promocoes/2025/00010")
        assert resp.status_code == 503
        assert resp.json()["error"] == "Banco de dados indisponível"
