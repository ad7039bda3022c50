"""Legacy per-ticket records: ticket_markups and ticket_hospitalities."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from ticketrules.models import Hospitality, LegacyTicketHospitality, LegacyTicketMarkup, LegacyTicketMarkupInput
from ticketrules.storage.hospitalities import HOSPITALITY_COLUMNS, to_hospitality

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

MARKUP_COLUMNS = [
    "id", "event_id", "ticket_id", "markup_type", "markup_price_usd", "markup_percentage",
    "base_price_usd", "final_price_usd", "is_active", "created_at", "updated_at",
]
HOSPITALITY_LINK_COLUMNS = ["id", "event_id", "ticket_id", "hospitality_id", "is_active", "created_at", "updated_at"]

_SELECT_MARKUP = f"SELECT {', '.join(MARKUP_COLUMNS)} FROM ticket_markups"


def _to_markup(row: tuple) -> LegacyTicketMarkup:
    return LegacyTicketMarkup.model_validate(dict(zip(MARKUP_COLUMNS, row)))


def get_legacy_markup(conn: DuckDBPyConnection, event_id: str, ticket_id: str) -> LegacyTicketMarkup | None:
    """Active legacy markup for one ticket, if any."""
    row = conn.execute(
        f"{_SELECT_MARKUP} WHERE is_active AND event_id = ? AND ticket_id = ?",
        [event_id, ticket_id],
    ).fetchone()
    return _to_markup(row) if row else None


def list_legacy_markups(
    conn: DuckDBPyConnection, event_id: str | None = None, limit: int = 500
) -> list[LegacyTicketMarkup]:
    conditions = ["is_active"]
    params: list[Any] = []
    if event_id:
        conditions.append("event_id = ?")
        params.append(event_id)
    params.append(limit)
    rows = conn.execute(
        f"{_SELECT_MARKUP} WHERE {' AND '.join(conditions)} ORDER BY event_id, ticket_id LIMIT ?",
        params,
    ).fetchall()
    return [_to_markup(r) for r in rows]


def upsert_legacy_markup(conn: DuckDBPyConnection, data: LegacyTicketMarkupInput) -> LegacyTicketMarkup:
    """Insert or replace the markup for (event_id, ticket_id); reactivates a deleted one."""
    now_ms = int(time.time() * 1000)
    conn.execute(
        """
        INSERT INTO ticket_markups (
            event_id, ticket_id, markup_type, markup_price_usd, markup_percentage,
            base_price_usd, final_price_usd, is_active, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, true, ?, ?)
        ON CONFLICT (event_id, ticket_id) DO UPDATE SET
            markup_type = excluded.markup_type,
            markup_price_usd = excluded.markup_price_usd,
            markup_percentage = excluded.markup_percentage,
            base_price_usd = excluded.base_price_usd,
            final_price_usd = excluded.final_price_usd,
            is_active = true,
            updated_at = excluded.updated_at
        """,
        [
            data.event_id,
            data.ticket_id,
            data.markup_type.value,
            data.markup_price_usd,
            data.markup_percentage,
            data.base_price_usd,
            data.final_price_usd,
            now_ms,
            now_ms,
        ],
    )
    return get_legacy_markup(conn, data.event_id, data.ticket_id)


def deactivate_legacy_markup(conn: DuckDBPyConnection, event_id: str, ticket_id: str) -> bool:
    rows = conn.execute(
        "UPDATE ticket_markups SET is_active = false, updated_at = ? "
        "WHERE is_active AND event_id = ? AND ticket_id = ? RETURNING id",
        [int(time.time() * 1000), event_id, ticket_id],
    ).fetchall()
    return bool(rows)


def legacy_hospitalities_for_ticket(
    conn: DuckDBPyConnection, event_id: str, ticket_id: str
) -> list[tuple[LegacyTicketHospitality, Hospitality]]:
    """Active legacy links to active hospitalities for one ticket."""
    rows = conn.execute(
        f"""
        SELECT {', '.join('t.' + c for c in HOSPITALITY_LINK_COLUMNS)},
               {', '.join('h.' + c for c in HOSPITALITY_COLUMNS)}
        FROM ticket_hospitalities t
        JOIN hospitalities h ON h.id = t.hospitality_id
        WHERE t.is_active AND h.is_active AND t.event_id = ? AND t.ticket_id = ?
        ORDER BY t.id
        """,
        [event_id, ticket_id],
    ).fetchall()
    n = len(HOSPITALITY_LINK_COLUMNS)
    return [
        (LegacyTicketHospitality.model_validate(dict(zip(HOSPITALITY_LINK_COLUMNS, r[:n]))), to_hospitality(r[n:]))
        for r in rows
    ]


def set_legacy_hospitalities(
    conn: DuckDBPyConnection, event_id: str, ticket_id: str, hospitality_ids: list[int]
) -> tuple[int, int]:
    """Make `hospitality_ids` the ticket's active legacy set. Returns (deactivated, assigned)."""
    now_ms = int(time.time() * 1000)
    wanted = list(dict.fromkeys(hospitality_ids))
    keep = ""
    params: list[Any] = [now_ms, event_id, ticket_id]
    if wanted:
        keep = f" AND hospitality_id NOT IN ({', '.join('?' for _ in wanted)})"
        params.extend(wanted)
    removed = conn.execute(
        f"UPDATE ticket_hospitalities SET is_active = false, updated_at = ? "
        f"WHERE is_active AND event_id = ? AND ticket_id = ?{keep} RETURNING id",
        params,
    ).fetchall()
    for hospitality_id in wanted:
        conn.execute(
            """
            INSERT INTO ticket_hospitalities (event_id, ticket_id, hospitality_id, is_active, created_at, updated_at)
            VALUES (?, ?, ?, true, ?, ?)
            ON CONFLICT (event_id, ticket_id, hospitality_id) DO UPDATE SET
                is_active = true,
                updated_at = excluded.updated_at
            """,
            [event_id, ticket_id, hospitality_id, now_ms, now_ms],
        )
    return len(removed), len(wanted)
