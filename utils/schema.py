"""SQLite schema for the campaign database.

Mirrors the relational layout the SCPC export is loaded into: one row per
campaign (``Campanha``) pointing at its mandated organization
(``Mandatario``), with collection events (``Apuracao``) holding prizes
(``Premio``) and two history tables for status changes and rulebook
uploads.

Dates are stored as ISO-8601 text ("YYYY-MM-DD" for dates,
"YYYY-MM-DDTHH:MM:SS" for datetimes) so that ``strftime``/``date`` work in
the query builder.
"""

import sqlite3

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS Mandatario (
    MandatarioId   INTEGER PRIMARY KEY AUTOINCREMENT,
    Cnpj           TEXT NOT NULL UNIQUE,   -- 14 digits, no mask
    NomeFantasia   TEXT,
    RazaoSocial    TEXT,
    Endereco       TEXT,
    Numero         TEXT,
    Complemento    TEXT,
    Bairro         TEXT,
    Cidade         TEXT,
    Estado         TEXT,                   -- UF, e.g. "SP"
    Cep            TEXT
);

CREATE TABLE IF NOT EXISTS Campanha (
    CampanhaId                    INTEGER PRIMARY KEY AUTOINCREMENT,
    MandatarioId                  INTEGER REFERENCES Mandatario(MandatarioId),
    NumeroPromocao                TEXT NOT NULL UNIQUE,  -- "2025/00001"
    Nome                          TEXT,
    Modalidade                    TEXT,
    NumeroCertificadoAutorizacao  TEXT,
    CodigoAutenticidade           TEXT,
    DataInicio                    TEXT,
    DataFim                       TEXT,
    QuantidadePremios             INTEGER,
    ValorTotal                    REAL,
    QuantidadeSeries              INTEGER,
    AbrangenciaNacional           INTEGER NOT NULL DEFAULT 0,
    AbrangenciaEstados            TEXT,                  -- "SP, RJ, MG"
    SituacaoAtual                 TEXT,
    SituacaoAtualDataHora         TEXT,
    RegulamentoNomeArquivoAtual   TEXT,
    RegulamentoAtualDataHora      TEXT,
    RegulamentoAtualTamanho       INTEGER
);

CREATE TABLE IF NOT EXISTS Apuracao (
    ApuracaoId          INTEGER PRIMARY KEY AUTOINCREMENT,
    CampanhaId          INTEGER NOT NULL REFERENCES Campanha(CampanhaId),
    IdApuracao          INTEGER,
    LocalApuracao       TEXT,
    InicioApuracao      TEXT,
    FimApuracao         TEXT,
    InicioParticipacao  TEXT,
    FimParticipacao     TEXT,
    Endereco            TEXT,
    Numero              TEXT,
    Complemento         TEXT,
    Bairro              TEXT,
    Cidade              TEXT,
    Estado              TEXT,
    Cep                 TEXT
);

CREATE TABLE IF NOT EXISTS Premio (
    PremioId       INTEGER PRIMARY KEY AUTOINCREMENT,
    ApuracaoId     INTEGER NOT NULL REFERENCES Apuracao(ApuracaoId),
    Descricao      TEXT,
    Quantidade     INTEGER,
    ValorUnitario  REAL,
    ValorTotal     REAL,
    Ordem          TEXT,
    DataEntrega    TEXT
);

CREATE TABLE IF NOT EXISTS SituacaoHistorico (
    SituacaoHistoricoId  INTEGER PRIMARY KEY AUTOINCREMENT,
    CampanhaId           INTEGER NOT NULL REFERENCES Campanha(CampanhaId),
    Situacao             TEXT,
    DataHoraCriacao      TEXT
);

CREATE TABLE IF NOT EXISTS RegulamentoHistorico (
    RegulamentoHistoricoId  INTEGER PRIMARY KEY AUTOINCREMENT,
    CampanhaId              INTEGER NOT NULL REFERENCES Campanha(CampanhaId),
    RegulamentoNomeArquivo  TEXT,
    Tamanho                 INTEGER,
    DataHoraCriacao         TEXT
);

CREATE INDEX IF NOT EXISTS idx_campanha_inicio ON Campanha(DataInicio);
CREATE INDEX IF NOT EXISTS idx_campanha_mandatario ON Campanha(MandatarioId);
CREATE INDEX IF NOT EXISTS idx_campanha_situacao ON Campanha(SituacaoAtual);
CREATE INDEX IF NOT EXISTS idx_mandatario_estado ON Mandatario(Estado);
CREATE INDEX IF NOT EXISTS idx_apuracao_campanha ON Apuracao(CampanhaId);
CREATE INDEX IF NOT EXISTS idx_premio_apuracao ON Premio(ApuracaoId);
"""

TABLES = (
    "Mandatario",
    "Campanha",
    "Apuracao",
    "Premio",
    "SituacaoHistorico",
    "RegulamentoHistorico",
)


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes (idempotent)."""
    conn.executescript(SCHEMA_DDL)
    conn.commit()
