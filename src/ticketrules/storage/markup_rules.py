"""markup_rules persistence: candidates, upsert, scope invalidation, admin listing."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from ticketrules.models import MarkupRule, MarkupRuleInput, MarkupRulePatch, MarkupValue, Scope, ScopeNames
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

COLUMNS = [*SCOPED_COLUMNS, "markup_type", "markup_amount"]
_SELECT = f"SELECT {', '.join(COLUMNS)} FROM markup_rules"


def _to_rule(row: tuple) -> MarkupRule:
    return MarkupRule.model_validate(dict(zip(COLUMNS, row)))


def markup_candidates(conn: DuckDBPyConnection, scope: Scope) -> list[MarkupRule]:
    """Active rules at every level the scope can address."""
    where, params = candidate_scopes(scope)
    rows = conn.execute(f"{_SELECT} WHERE is_active AND {where} ORDER BY id", params).fetchall()
    return [_to_rule(r) for r in rows]


def find_active_markup_rule(conn: DuckDBPyConnection, scope: Scope) -> MarkupRule | None:
    """Active rule stored exactly at `scope` (already normalized to its target level)."""
    where, params = exact_scope(scope.target_level, scope)
    row = conn.execute(f"{_SELECT} WHERE is_active AND {where} ORDER BY id LIMIT 1", params).fetchone()
    return _to_rule(row) if row else None


def insert_markup_rule(
    conn: DuckDBPyConnection,
    scope: Scope,
    value: MarkupValue,
    names: ScopeNames | None = None,
    actor: str | None = None,
) -> int:
    """Insert a rule at `scope`'s target level. Returns the new id."""
    now_ms = int(time.time() * 1000)
    n = names or ScopeNames()
    row = conn.execute(
        """
        INSERT INTO markup_rules (
            level, sport_type, tournament_id, team_id, event_id, ticket_id,
            sport_name, tournament_name, team_name, event_name, ticket_name,
            markup_type, markup_amount, is_active, created_by, updated_by, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        RETURNING id
        """,
        [
            scope.target_level.value,
            *scope_values(scope),
            n.sport_name,
            n.tournament_name,
            n.team_name,
            n.event_name,
            n.ticket_name,
            value.markup_type.value,
            value.markup_amount,
            value.is_active,
            actor,
            actor,
            now_ms,
            now_ms,
        ],
    ).fetchone()
    return int(row[0])


def update_markup_rule(
    conn: DuckDBPyConnection,
    rule_id: int,
    value: MarkupValue,
    names: ScopeNames | None = None,
    actor: str | None = None,
) -> None:
    """Overwrite type, amount and active flag in place. Names are only replaced when given."""
    sets = ["markup_type = ?", "markup_amount = ?", "is_active = ?", "updated_by = ?", "updated_at = ?"]
    params: list[Any] = [value.markup_type.value, value.markup_amount, value.is_active, actor, int(time.time() * 1000)]
    if names is not None:
        for field, name in names.model_dump().items():
            if name is not None:
                sets.append(f"{field} = ?")
                params.append(name)
    params.append(rule_id)
    conn.execute(f"UPDATE markup_rules SET {', '.join(sets)} WHERE id = ?", params)


def upsert_markup_rule(
    conn: DuckDBPyConnection, data: MarkupRuleInput, actor: str | None = None
) -> tuple[MarkupRule, bool]:
    """Create the rule, or update the active rule already at its scope. Returns (rule, created)."""
    scope = data.scope.rule_scope()
    existing = find_active_markup_rule(conn, scope)
    if existing is not None:
        update_markup_rule(conn, existing.id, data, data.names, actor)
        return get_markup_rule(conn, existing.id), False
    rule_id = insert_markup_rule(conn, scope, data, data.names, actor)
    return get_markup_rule(conn, rule_id), True


def invalidate_markup_at_scope(conn: DuckDBPyConnection, scope: Scope, actor: str | None = None) -> int:
    """Soft-delete every active rule stored at `scope`. Returns the number invalidated."""
    where, params = exact_scope(scope.target_level, scope)
    rows = conn.execute(
        f"UPDATE markup_rules SET is_active = false, updated_by = ?, updated_at = ? "
        f"WHERE is_active AND {where} RETURNING id",
        [actor, int(time.time() * 1000), *params],
    ).fetchall()
    return len(rows)


def get_markup_rule(conn: DuckDBPyConnection, rule_id: int) -> MarkupRule | None:
    row = conn.execute(f"{_SELECT} WHERE id = ?", [rule_id]).fetchone()
    return _to_rule(row) if row else None


def patch_markup_rule(
    conn: DuckDBPyConnection, rule_id: int, patch: MarkupRulePatch, actor: str | None = None
) -> MarkupRule | None:
    """Apply a partial update by id. Reactivating a rule invalidates any other active rule at its scope."""
    rule = get_markup_rule(conn, rule_id)
    if rule is None:
        return None
    changes = patch.model_dump(exclude_none=True)
    merged = MarkupValue(
        markup_type=changes.get("markup_type", rule.markup_type),
        markup_amount=changes.get("markup_amount", rule.markup_amount),
        is_active=changes.get("is_active", rule.is_active),
    )
    if merged.is_active and not rule.is_active:
        where, params = exact_scope(rule.level, rule.scope)
        conn.execute(
            f"UPDATE markup_rules SET is_active = false, updated_by = ?, updated_at = ? "
            f"WHERE is_active AND id <> ? AND {where}",
            [actor, int(time.time() * 1000), rule_id, *params],
        )
    update_markup_rule(conn, rule_id, merged, None, actor)
    return get_markup_rule(conn, rule_id)


def deactivate_markup_rule(conn: DuckDBPyConnection, rule_id: int, actor: str | None = None) -> bool:
    """Soft-delete by id. False if no such rule."""
    rows = conn.execute(
        "UPDATE markup_rules SET is_active = false, updated_by = ?, updated_at = ? WHERE id = ? RETURNING id",
        [actor, int(time.time() * 1000), rule_id],
    ).fetchall()
    return bool(rows)


def list_markup_rules(
    conn: DuckDBPyConnection,
    filters: dict[str, Any] | None = None,
    *,
    page: int = 1,
    limit: int = 50,
) -> dict[str, Any]:
    """Filtered, paginated listing as {data, pagination}."""
    where, params = filter_clause(filters or {})
    total = conn.execute(f"SELECT COUNT(*) FROM markup_rules WHERE {where}", params).fetchone()[0]
    rows = conn.execute(
        f"""
        {_SELECT}
        WHERE {where}
        ORDER BY {LEVEL_ORDER_SQL}, sport_name, tournament_name, team_name, event_name, ticket_name,
                 updated_at DESC, id
        LIMIT ? OFFSET ?
        """,
        [*params, limit, (page - 1) * limit],
    ).fetchall()
    return {"data": [_to_rule(r) for r in rows], "pagination": pagination(int(total), page, limit)}


def markup_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Rule counts by level and state, plus legacy per-ticket markups."""
    rows = conn.execute(
        f"""
        SELECT level, is_active, COUNT(*)
        FROM markup_rules
        GROUP BY level, is_active
        ORDER BY {LEVEL_ORDER_SQL}
        """
    ).fetchall()
    by_level: dict[str, dict[str, int]] = {}
    active = inactive = 0
    for level, is_active, count in rows:
        bucket = by_level.setdefault(level, {"active": 0, "inactive": 0})
        if is_active:
            bucket["active"] += count
            active += count
        else:
            bucket["inactive"] += count
            inactive += count
    legacy = conn.execute("SELECT COUNT(*) FROM ticket_markups WHERE is_active").fetchone()[0]
    return {
        "total_rules": active + inactive,
        "active_rules": active,
        "inactive_rules": inactive,
        "by_level": by_level,
        "legacy_ticket_markups": int(legacy),
    }
