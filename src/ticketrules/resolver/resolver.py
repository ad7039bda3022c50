"""Resolver: effective markup and hospitality bundle for a ticket scope."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from ticketrules.models import (
    Level,
    MatchedLevel,
    Resolution,
    ResolvedHospitality,
    ResolvedMarkup,
    Scope,
    ScopeNames,
    SourceKind,
    Tier,
)
from ticketrules.resolver.strategies import Candidate, UnionStrategy, WinnerStrategy
from ticketrules.storage.hospitalities import assignment_candidates
from ticketrules.storage.legacy import get_legacy_markup, legacy_hospitalities_for_ticket
from ticketrules.storage.markup_rules import markup_candidates

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from ticketrules.storage import RuleStore

log = structlog.get_logger(__name__)

LEGACY_TIER = Tier(SourceKind.LEGACY, Level.TICKET)


def _names(record: Any) -> ScopeNames:
    return ScopeNames(**{field: getattr(record, field) for field in ScopeNames.model_fields})


class Resolver:
    """Reads candidates for every addressable level in one snapshot, then applies a strategy.

    Markup uses WinnerStrategy, hospitality uses UnionStrategy; both share the
    same precedence table with legacy per-ticket records on top.
    """

    def __init__(
        self,
        store: RuleStore,
        *,
        markup_strategy: WinnerStrategy | None = None,
        hospitality_strategy: UnionStrategy | None = None,
    ) -> None:
        self.store = store
        self.markup_strategy = markup_strategy or WinnerStrategy()
        self.hospitality_strategy = hospitality_strategy or UnionStrategy()

    # --- single ticket ---

    def resolve_markup(self, scope: Scope | dict[str, Any]) -> ResolvedMarkup | None:
        scope = Scope.coerce(scope)
        with self.store.read() as conn:
            return self.markup_in(conn, scope)

    def resolve_hospitalities(self, scope: Scope | dict[str, Any]) -> list[ResolvedHospitality]:
        scope = Scope.coerce(scope)
        with self.store.read() as conn:
            return self.hospitalities_in(conn, scope)

    def resolve(self, scope: Scope | dict[str, Any]) -> Resolution:
        """Markup and hospitalities from the same snapshot."""
        scope = Scope.coerce(scope)
        with self.store.read() as conn:
            return Resolution(markup=self.markup_in(conn, scope), hospitalities=self.hospitalities_in(conn, scope))

    # --- whole event ---

    def resolve_markups_for_event(
        self, scope: Scope | dict[str, Any], ticket_ids: list[str]
    ) -> dict[str, ResolvedMarkup | None]:
        """Markup per ticket of one event, all tickets read from one snapshot."""
        scope = Scope.coerce(scope)
        with self.store.read() as conn:
            return {tid: self.markup_in(conn, scope.with_ticket(tid)) for tid in dict.fromkeys(ticket_ids)}

    def resolve_hospitalities_for_event(
        self, scope: Scope | dict[str, Any], ticket_ids: list[str]
    ) -> dict[str, list[ResolvedHospitality]]:
        scope = Scope.coerce(scope)
        with self.store.read() as conn:
            return {tid: self.hospitalities_in(conn, scope.with_ticket(tid)) for tid in dict.fromkeys(ticket_ids)}

    # --- on an open read cursor ---

    def markup_in(self, conn: DuckDBPyConnection, scope: Scope) -> ResolvedMarkup | None:
        candidates: list[Candidate[ResolvedMarkup]] = []
        if scope.legacy_key:
            legacy = get_legacy_markup(conn, *scope.legacy_key)
            if legacy is not None:
                candidates.append(
                    Candidate(
                        tier=LEGACY_TIER,
                        record_id=legacy.id,
                        value=ResolvedMarkup(
                            level=Level.TICKET,
                            source=SourceKind.LEGACY,
                            rule_id=legacy.id,
                            markup_type=legacy.markup_type,
                            markup_amount=legacy.effective_amount,
                        ),
                    )
                )
        for rule in markup_candidates(conn, scope):
            candidates.append(
                Candidate(
                    tier=Tier(SourceKind.HIERARCHICAL, rule.level),
                    record_id=rule.id,
                    value=ResolvedMarkup(
                        level=rule.level,
                        source=SourceKind.HIERARCHICAL,
                        rule_id=rule.id,
                        markup_type=rule.markup_type,
                        markup_amount=rule.markup_amount,
                        names=_names(rule),
                    ),
                )
            )
        winner = self.markup_strategy.select(candidates)
        if winner is None:
            return None
        log.debug(
            "markup_resolved",
            level=winner.tier.level.value,
            source=winner.tier.source.value,
            rule_id=winner.record_id,
            candidates=len(candidates),
        )
        return winner.value

    def hospitalities_in(self, conn: DuckDBPyConnection, scope: Scope) -> list[ResolvedHospitality]:
        candidates: list[Candidate[Any]] = []
        if scope.legacy_key:
            for link, hospitality in legacy_hospitalities_for_ticket(conn, *scope.legacy_key):
                candidates.append(
                    Candidate(tier=LEGACY_TIER, record_id=link.id, value=hospitality, key=hospitality.id)
                )
        for assignment, hospitality in assignment_candidates(conn, scope):
            candidates.append(
                Candidate(
                    tier=Tier(SourceKind.HIERARCHICAL, assignment.level),
                    record_id=assignment.id,
                    value=hospitality,
                    key=hospitality.id,
                )
            )
        resolved = []
        for merged in self.hospitality_strategy.select(candidates):
            best = merged.best
            hospitality = best.value
            resolved.append(
                ResolvedHospitality(
                    hospitality_id=hospitality.id,
                    name=hospitality.name,
                    description=hospitality.description,
                    sort_order=hospitality.sort_order,
                    level=best.tier.level,
                    source=best.tier.source,
                    assignment_id=best.record_id,
                    matched_levels=[
                        MatchedLevel(level=c.tier.level, source=c.tier.source, assignment_id=c.record_id)
                        for c in merged.matches
                    ],
                )
            )
        resolved.sort(key=lambda h: (h.sort_order, h.name, h.hospitality_id))
        return resolved
