"""SQL fragments for matching scoped rows (markup_rules, hospitality_assignments)."""

from __future__ import annotations

from typing import Any

from ticketrules.models.scope import SCOPE_FIELDS, DISPLAY_ORDER, Level, Scope

SCOPED_COLUMNS = [
    "id", "level", *SCOPE_FIELDS,
    "sport_name", "tournament_name", "team_name", "event_name", "ticket_name",
    "is_active", "created_by", "updated_by", "created_at", "updated_at",
]

# Admin listings show sport rules first, ticket rules last.
LEVEL_ORDER_SQL = "CASE level " + " ".join(
    f"WHEN '{level.value}' THEN {i}" for i, level in enumerate(DISPLAY_ORDER)
) + " END"

FILTER_KEYS = ("level", *SCOPE_FIELDS, "is_active")


def exact_scope(level: Level, scope: Scope, prefix: str = "") -> tuple[str, list[Any]]:
    """Condition matching rows stored at exactly `scope` on `level`.

    `scope` must already be projected onto the level's keys; the other keys
    must be NULL in the row.
    """
    parts = [f"{prefix}level = ?"]
    params: list[Any] = [level.value]
    for key in SCOPE_FIELDS:
        parts.append(f"{prefix}{key} IS NOT DISTINCT FROM ?")
        params.append(getattr(scope, key))
    return "(" + " AND ".join(parts) + ")", params


def candidate_scopes(scope: Scope, prefix: str = "") -> tuple[str, list[Any]]:
    """OR of exact_scope over every level the scope can address."""
    parts: list[str] = []
    params: list[Any] = []
    for level in scope.addressable_levels():
        sql, p = exact_scope(level, scope.at_level(level), prefix)
        parts.append(sql)
        params.extend(p)
    return "(" + " OR ".join(parts) + ")", params


def filter_clause(filters: dict[str, Any], prefix: str = "") -> tuple[str, list[Any]]:
    """WHERE body for admin listings. Unset filters are skipped."""
    conditions = ["1=1"]
    params: list[Any] = []
    for key in FILTER_KEYS:
        value = filters.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, Level):
            value = value.value
        conditions.append(f"{prefix}{key} = ?")
        params.append(value)
    return " AND ".join(conditions), params


def scope_values(scope: Scope) -> list[str | None]:
    return list(scope.key_values())


def pagination(total: int, page: int, limit: int) -> dict[str, Any]:
    total_pages = (total + limit - 1) // limit if limit else 0
    return {
        "current_page": page,
        "per_page": limit,
        "total_records": total,
        "total_pages": total_pages,
        "has_more": page < total_pages,
    }
