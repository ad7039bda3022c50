"""Hospitality catalogue and hierarchical hospitality_assignments persistence."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from ticketrules.models import (
    Hospitality,
    HospitalityAssignment,
    HospitalityInput,
    HospitalityPatch,
    Scope,
    ScopeNames,
)
from ticketrules.storage.scoping import (
    LEVEL_ORDER_SQL,
    SCOPED_COLUMNS,
    candidate_scopes,
    exact_scope,
    filter_clause,
    pagination,
    scope_values,
)

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

HOSPITALITY_COLUMNS = ["id", "name", "description", "is_active", "sort_order", "created_at", "updated_at"]
ASSIGNMENT_COLUMNS = [*SCOPED_COLUMNS, "hospitality_id"]

_SELECT_HOSPITALITY = f"SELECT {', '.join(HOSPITALITY_COLUMNS)} FROM hospitalities"
_SELECT_ASSIGNMENT = (
    f"SELECT {', '.join('a.' + c for c in ASSIGNMENT_COLUMNS)}, h.name "
    "FROM hospitality_assignments a LEFT JOIN hospitalities h ON h.id = a.hospitality_id"
)


def to_hospitality(row: tuple) -> Hospitality:
    return Hospitality.model_validate(dict(zip(HOSPITALITY_COLUMNS, row)))


def _to_assignment(row: tuple) -> HospitalityAssignment:
    data = dict(zip(ASSIGNMENT_COLUMNS, row))
    data["hospitality_name"] = row[len(ASSIGNMENT_COLUMNS)]
    return HospitalityAssignment.model_validate(data)


# --- catalogue ---


def create_hospitality(conn: DuckDBPyConnection, data: HospitalityInput) -> Hospitality:
    now_ms = int(time.time() * 1000)
    row = conn.execute(
        """
        INSERT INTO hospitalities (name, description, is_active, sort_order, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        RETURNING id
        """,
        [data.name, data.description, data.is_active, data.sort_order, now_ms, now_ms],
    ).fetchone()
    return get_hospitality(conn, int(row[0]))


def get_hospitality(conn: DuckDBPyConnection, hospitality_id: int) -> Hospitality | None:
    row = conn.execute(f"{_SELECT_HOSPITALITY} WHERE id = ?", [hospitality_id]).fetchone()
    return to_hospitality(row) if row else None


def list_hospitalities(conn: DuckDBPyConnection, active_only: bool = False) -> list[Hospitality]:
    where = "WHERE is_active" if active_only else ""
    rows = conn.execute(f"{_SELECT_HOSPITALITY} {where} ORDER BY sort_order, name, id").fetchall()
    return [to_hospitality(r) for r in rows]


def existing_hospitality_ids(conn: DuckDBPyConnection, ids: list[int]) -> set[int]:
    if not ids:
        return set()
    placeholders = ", ".join("?" for _ in ids)
    rows = conn.execute(f"SELECT id FROM hospitalities WHERE id IN ({placeholders})", list(ids)).fetchall()
    return {int(r[0]) for r in rows}


def update_hospitality(
    conn: DuckDBPyConnection, hospitality_id: int, patch: HospitalityPatch
) -> Hospitality | None:
    # description may be cleared; the other columns are NOT NULL
    changes = {
        k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None or k == "description"
    }
    if changes:
        sets = [f"{k} = ?" for k in changes]
        conn.execute(
            f"UPDATE hospitalities SET {', '.join(sets)}, updated_at = ? WHERE id = ?",
            [*changes.values(), int(time.time() * 1000), hospitality_id],
        )
    return get_hospitality(conn, hospitality_id)


def deactivate_hospitality(conn: DuckDBPyConnection, hospitality_id: int) -> bool:
    """Hospitalities are deactivated, never deleted; their assignments stay but stop resolving."""
    rows = conn.execute(
        "UPDATE hospitalities SET is_active = false, updated_at = ? WHERE id = ? RETURNING id",
        [int(time.time() * 1000), hospitality_id],
    ).fetchall()
    return bool(rows)


# --- assignments ---


def assignment_candidates(
    conn: DuckDBPyConnection, scope: Scope
) -> list[tuple[HospitalityAssignment, Hospitality]]:
    """Active assignments of active hospitalities at every level the scope can address."""
    where, params = candidate_scopes(scope, prefix="a.")
    rows = conn.execute(
        f"""
        SELECT {', '.join('a.' + c for c in ASSIGNMENT_COLUMNS)}, h.name,
               {', '.join('h.' + c for c in HOSPITALITY_COLUMNS)}
        FROM hospitality_assignments a
        JOIN hospitalities h ON h.id = a.hospitality_id
        WHERE a.is_active AND h.is_active AND {where}
        ORDER BY a.id
        """,
        params,
    ).fetchall()
    n = len(ASSIGNMENT_COLUMNS) + 1
    return [(_to_assignment(r[:n]), to_hospitality(r[n:])) for r in rows]


def find_active_assignment(
    conn: DuckDBPyConnection, hospitality_id: int, scope: Scope
) -> HospitalityAssignment | None:
    where, params = exact_scope(scope.target_level, scope, prefix="a.")
    row = conn.execute(
        f"{_SELECT_ASSIGNMENT} WHERE a.is_active AND a.hospitality_id = ? AND {where} ORDER BY a.id LIMIT 1",
        [hospitality_id, *params],
    ).fetchone()
    return _to_assignment(row) if row else None


def get_assignment(conn: DuckDBPyConnection, assignment_id: int) -> HospitalityAssignment | None:
    row = conn.execute(f"{_SELECT_ASSIGNMENT} WHERE a.id = ?", [assignment_id]).fetchone()
    return _to_assignment(row) if row else None


def upsert_assignment(
    conn: DuckDBPyConnection,
    hospitality_id: int,
    scope: Scope,
    names: ScopeNames | None = None,
    actor: str | None = None,
) -> tuple[HospitalityAssignment, bool]:
    """Assign a hospitality at `scope`, or refresh the active assignment already there.

    Returns (assignment, created). The hospitality must exist; callers check.
    """
    scope = scope.rule_scope()
    now_ms = int(time.time() * 1000)
    n = names or ScopeNames()
    existing = find_active_assignment(conn, hospitality_id, scope)
    if existing is not None:
        sets = ["updated_by = ?", "updated_at = ?"]
        params: list[Any] = [actor, now_ms]
        for field, name in n.model_dump().items():
            if name is not None:
                sets.append(f"{field} = ?")
                params.append(name)
        conn.execute(
            f"UPDATE hospitality_assignments SET {', '.join(sets)} WHERE id = ?",
            [*params, existing.id],
        )
        return get_assignment(conn, existing.id), False
    row = conn.execute(
        """
        INSERT INTO hospitality_assignments (
            hospitality_id, level, sport_type, tournament_id, team_id, event_id, ticket_id,
            sport_name, tournament_name, team_name, event_name, ticket_name,
            is_active, created_by, updated_by, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, true, ?, ?, ?, ?)
        RETURNING id
        """,
        [
            hospitality_id,
            scope.target_level.value,
            *scope_values(scope),
            n.sport_name,
            n.tournament_name,
            n.team_name,
            n.event_name,
            n.ticket_name,
            actor,
            actor,
            now_ms,
            now_ms,
        ],
    ).fetchone()
    return get_assignment(conn, int(row[0])), True


def invalidate_assignments_at_scope(
    conn: DuckDBPyConnection,
    scope: Scope,
    hospitality_ids: list[int] | None = None,
    actor: str | None = None,
) -> int:
    """Soft-delete active assignments stored at `scope` (all, or only the given hospitalities)."""
    where, params = exact_scope(scope.target_level, scope)
    only = ""
    if hospitality_ids is not None:
        if not hospitality_ids:
            return 0
        only = f" AND hospitality_id IN ({', '.join('?' for _ in hospitality_ids)})"
        params = [*params, *hospitality_ids]
    rows = conn.execute(
        f"UPDATE hospitality_assignments SET is_active = false, updated_by = ?, updated_at = ? "
        f"WHERE is_active AND {where}{only} RETURNING id",
        [actor, int(time.time() * 1000), *params],
    ).fetchall()
    return len(rows)


def list_assignments(
    conn: DuckDBPyConnection,
    filters: dict[str, Any] | None = None,
    *,
    page: int = 1,
    limit: int = 50,
) -> dict[str, Any]:
    filters = dict(filters or {})
    hospitality_id = filters.pop("hospitality_id", None)
    where, params = filter_clause(filters, prefix="a.")
    if hospitality_id is not None:
        where += " AND a.hospitality_id = ?"
        params.append(hospitality_id)
    total = conn.execute(
        f"SELECT COUNT(*) FROM hospitality_assignments a WHERE {where}", params
    ).fetchone()[0]
    order = LEVEL_ORDER_SQL.replace("CASE level", "CASE a.level")
    rows = conn.execute(
        f"""
        {_SELECT_ASSIGNMENT}
        WHERE {where}
        ORDER BY {order}, a.sport_name, a.tournament_name, a.team_name, a.event_name, a.ticket_name,
                 h.sort_order, h.name, a.id
        LIMIT ? OFFSET ?
        """,
        [*params, limit, (page - 1) * limit],
    ).fetchall()
    return {"data": [_to_assignment(r) for r in rows], "pagination": pagination(int(total), page, limit)}


def hospitality_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    total, active = conn.execute(
        "SELECT COUNT(*), COUNT(*) FILTER (WHERE is_active) FROM hospitalities"
    ).fetchone()
    assignments = conn.execute(
        "SELECT COUNT(*) FROM hospitality_assignments WHERE is_active"
    ).fetchone()[0]
    legacy = conn.execute("SELECT COUNT(*) FROM ticket_hospitalities WHERE is_active").fetchone()[0]
    by_level = conn.execute(
        f"""
        SELECT level, COUNT(*)
        FROM hospitality_assignments
        WHERE is_active
        GROUP BY level
        ORDER BY {LEVEL_ORDER_SQL}
        """
    ).fetchall()
    top = conn.execute(
        """
        SELECT h.id, h.name, COUNT(a.id) AS assignment_count
        FROM hospitalities h
        LEFT JOIN hospitality_assignments a ON a.hospitality_id = h.id AND a.is_active
        GROUP BY h.id, h.name
        ORDER BY assignment_count DESC, h.id
        LIMIT 5
        """
    ).fetchall()
    return {
        "total_hospitalities": int(total),
        "active_hospitalities": int(active or 0),
        "total_assignments": int(assignments),
        "legacy_assignments": int(legacy),
        "assignments_by_level": {level: int(count) for level, count in by_level},
        "top_hospitalities": [
            {"id": int(i), "name": name, "assignment_count": int(c)} for i, name, c in top
        ],
    }
