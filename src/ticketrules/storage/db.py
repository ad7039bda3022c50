"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS markup_rule_seq START 1;
CREATE SEQUENCE IF NOT EXISTS hospitality_seq START 1;
CREATE SEQUENCE IF NOT EXISTS assignment_seq START 1;
CREATE SEQUENCE IF NOT EXISTS ticket_markup_seq START 1;
CREATE SEQUENCE IF NOT EXISTS ticket_hospitality_seq START 1;

-- Hierarchical markup rules. One active row per (level, scope keys), enforced in code.
-- Invalidated rows stay for audit.
CREATE TABLE IF NOT EXISTS markup_rules (
    id              BIGINT PRIMARY KEY DEFAULT nextval('markup_rule_seq'),
    level           VARCHAR NOT NULL,
    sport_type      VARCHAR NOT NULL,
    tournament_id   VARCHAR,
    team_id         VARCHAR,
    event_id        VARCHAR,
    ticket_id       VARCHAR,
    sport_name      VARCHAR,
    tournament_name VARCHAR,
    team_name       VARCHAR,
    event_name      VARCHAR,
    ticket_name     VARCHAR,
    markup_type     VARCHAR NOT NULL DEFAULT 'fixed',
    markup_amount   DECIMAL(10, 2) NOT NULL,
    is_active       BOOLEAN NOT NULL DEFAULT TRUE,
    created_by      VARCHAR,
    updated_by      VARCHAR,
    created_at      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Hospitality catalogue
CREATE TABLE IF NOT EXISTS hospitalities (
    id              BIGINT PRIMARY KEY DEFAULT nextval('hospitality_seq'),
    name            VARCHAR NOT NULL,
    description     VARCHAR,
    is_active       BOOLEAN NOT NULL DEFAULT TRUE,
    sort_order      INTEGER NOT NULL DEFAULT 0,
    created_at      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Hierarchical hospitality assignments. One active row per (hospitality_id, level, scope keys).
CREATE TABLE IF NOT EXISTS hospitality_assignments (
    id              BIGINT PRIMARY KEY DEFAULT nextval('assignment_seq'),
    hospitality_id  BIGINT NOT NULL,
    level           VARCHAR NOT NULL,
    sport_type      VARCHAR NOT NULL,
    tournament_id   VARCHAR,
    team_id         VARCHAR,
    event_id        VARCHAR,
    ticket_id       VARCHAR,
    sport_name      VARCHAR,
    tournament_name VARCHAR,
    team_name       VARCHAR,
    event_name      VARCHAR,
    ticket_name     VARCHAR,
    is_active       BOOLEAN NOT NULL DEFAULT TRUE,
    created_by      VARCHAR,
    updated_by      VARCHAR,
    created_at      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Legacy per-ticket markups (pre-hierarchy, flat)
CREATE TABLE IF NOT EXISTS ticket_markups (
    id                  BIGINT PRIMARY KEY DEFAULT nextval('ticket_markup_seq'),
    event_id            VARCHAR NOT NULL,
    ticket_id           VARCHAR NOT NULL,
    markup_type         VARCHAR NOT NULL DEFAULT 'fixed',
    markup_price_usd    DECIMAL(10, 2) NOT NULL DEFAULT 0,
    markup_percentage   DECIMAL(5, 2),
    base_price_usd      DECIMAL(10, 2) NOT NULL DEFAULT 0,
    final_price_usd     DECIMAL(10, 2),
    is_active           BOOLEAN NOT NULL DEFAULT TRUE,
    created_at          BIGINT NOT NULL,
    updated_at          BIGINT NOT NULL,
    UNIQUE (event_id, ticket_id)
);

-- Legacy per-ticket hospitalities
CREATE TABLE IF NOT EXISTS ticket_hospitalities (
    id              BIGINT PRIMARY KEY DEFAULT nextval('ticket_hospitality_seq'),
    event_id        VARCHAR NOT NULL,
    ticket_id       VARCHAR NOT NULL,
    hospitality_id  BIGINT NOT NULL,
    is_active       BOOLEAN NOT NULL DEFAULT TRUE,
    created_at      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL,
    UNIQUE (event_id, ticket_id, hospitality_id)
)
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    ":memory:" opens an in-process database (tests, one-shot CLI runs)."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create sequences and tables if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
