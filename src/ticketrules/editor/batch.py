"""BatchRuleEditor: every admin write, each one all-or-nothing."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from ticketrules.errors import BatchApplyError, InvalidRequestError, NotFoundError
from ticketrules.models import (
    Hospitality,
    HospitalityAssignment,
    HospitalityInput,
    HospitalityPatch,
    LegacyTicketMarkup,
    LegacyTicketMarkupInput,
    MarkupRule,
    MarkupRuleInput,
    MarkupRulePatch,
    MarkupValue,
    Scope,
    ScopeNames,
)
from ticketrules.storage import hospitalities as hosp_db
from ticketrules.storage import legacy as legacy_db
from ticketrules.storage import markup_rules as markup_db

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from ticketrules.storage import RuleStore

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReplaceResult:
    deleted_count: int
    inserted_count: int


class BatchRuleEditor:
    """Runs each operation in one store transaction under the store write lock.

    Scope-level operations (replace / add / remove) roll back on any failure and
    raise BatchApplyError, leaving the scope exactly as it was. Validation errors
    are raised before anything is written.
    """

    def __init__(self, store: RuleStore) -> None:
        self.store = store

    @contextmanager
    def _apply(
        self,
        op: str,
        scope: Scope | None = None,
        passthrough: tuple[type[Exception], ...] = (InvalidRequestError,),
    ) -> Iterator[DuckDBPyConnection]:
        scope_dict = scope.model_dump(exclude_none=True) if scope else {}
        try:
            with self.store.transaction() as conn:
                yield conn
        except passthrough:
            raise
        except Exception as e:
            log.error("batch_rolled_back", op=op, scope=scope_dict, error=str(e))
            raise BatchApplyError(f"{op} failed and was rolled back: {e}", scope=scope_dict) from e

    # --- markup rules ---

    def create_or_update_rule(
        self, rule: MarkupRuleInput | dict[str, Any], actor: str | None = None
    ) -> tuple[MarkupRule, bool]:
        """Upsert one rule at its scope. Returns (rule, created)."""
        rule = rule if isinstance(rule, MarkupRuleInput) else MarkupRuleInput.model_validate(rule)
        scope = rule.scope.rule_scope()
        with self._apply("create_or_update_rule", scope) as conn:
            saved, created = markup_db.upsert_markup_rule(conn, rule, actor)
        log.info("markup_rule_saved", rule_id=saved.id, level=saved.level.value, created=created)
        return saved, created

    def add_markup_rules(
        self, rules: list[MarkupRuleInput], actor: str | None = None
    ) -> list[tuple[MarkupRule, bool]]:
        """Upsert several rules (possibly at different scopes) atomically."""
        for rule in rules:
            rule.scope.rule_scope()
        with self._apply("add_markup_rules") as conn:
            return [markup_db.upsert_markup_rule(conn, rule, actor) for rule in rules]

    def replace_markup_at_scope(
        self,
        scope: Scope | dict[str, Any],
        rules: list[MarkupValue],
        names: ScopeNames | None = None,
        actor: str | None = None,
    ) -> ReplaceResult:
        """Invalidate the rule at `scope` and insert `rules` (zero or one) in its place.

        An empty list clears the scope so resolution falls through to the parent level.
        """
        scope = Scope.coerce(scope).rule_scope()
        if len(rules) > 1:
            raise InvalidRequestError("at most one markup rule may be active per scope")
        with self._apply("replace_markup_at_scope", scope) as conn:
            deleted = markup_db.invalidate_markup_at_scope(conn, scope, actor)
            for rule in rules:
                markup_db.insert_markup_rule(conn, scope, rule, names, actor)
        result = ReplaceResult(deleted_count=deleted, inserted_count=len(rules))
        log.info("markup_scope_replaced", scope=scope.model_dump(exclude_none=True), **result.__dict__)
        return result

    def remove_markup_at_scope(self, scope: Scope | dict[str, Any], actor: str | None = None) -> int:
        scope = Scope.coerce(scope).rule_scope()
        with self._apply("remove_markup_at_scope", scope) as conn:
            return markup_db.invalidate_markup_at_scope(conn, scope, actor)

    def update_rule(self, rule_id: int, patch: MarkupRulePatch, actor: str | None = None) -> MarkupRule:
        with self._apply("update_rule", passthrough=(InvalidRequestError, NotFoundError)) as conn:
            rule = markup_db.patch_markup_rule(conn, rule_id, patch, actor)
            if rule is None:
                raise NotFoundError(f"markup rule {rule_id} not found")
        return rule

    def delete_rule(self, rule_id: int, actor: str | None = None) -> None:
        """Soft-delete by id."""
        with self._apply("delete_rule", passthrough=(InvalidRequestError, NotFoundError)) as conn:
            if not markup_db.deactivate_markup_rule(conn, rule_id, actor):
                raise NotFoundError(f"markup rule {rule_id} not found")

    # --- hospitality assignments ---

    @staticmethod
    def _require_hospitalities(conn: DuckDBPyConnection, ids: list[int]) -> None:
        missing = sorted(set(ids) - hosp_db.existing_hospitality_ids(conn, ids))
        if missing:
            raise NotFoundError(f"unknown hospitality ids: {missing}")

    def create_or_update_assignment(
        self,
        hospitality_id: int,
        scope: Scope | dict[str, Any],
        names: ScopeNames | None = None,
        actor: str | None = None,
    ) -> tuple[HospitalityAssignment, bool]:
        scope = Scope.coerce(scope).rule_scope()
        with self._apply(
            "create_or_update_assignment", scope, passthrough=(InvalidRequestError, NotFoundError)
        ) as conn:
            self._require_hospitalities(conn, [hospitality_id])
            return hosp_db.upsert_assignment(conn, hospitality_id, scope, names, actor)

    def replace_hospitalities_at_scope(
        self,
        scope: Scope | dict[str, Any],
        hospitality_ids: list[int],
        names: ScopeNames | None = None,
        actor: str | None = None,
    ) -> ReplaceResult:
        """Make `hospitality_ids` the exact set assigned at `scope`."""
        scope = Scope.coerce(scope).rule_scope()
        ids = list(dict.fromkeys(hospitality_ids))
        with self._apply("replace_hospitalities_at_scope", scope) as conn:
            deleted = hosp_db.invalidate_assignments_at_scope(conn, scope, actor=actor)
            for hospitality_id in ids:
                self._require_hospitalities(conn, [hospitality_id])
                hosp_db.upsert_assignment(conn, hospitality_id, scope, names, actor)
        result = ReplaceResult(deleted_count=deleted, inserted_count=len(ids))
        log.info("hospitality_scope_replaced", scope=scope.model_dump(exclude_none=True), **result.__dict__)
        return result

    def add_hospitalities_at_scope(
        self,
        scope: Scope | dict[str, Any],
        hospitality_ids: list[int],
        names: ScopeNames | None = None,
        actor: str | None = None,
    ) -> list[tuple[HospitalityAssignment, bool]]:
        """Assign each hospitality at `scope`, keeping what is already there."""
        scope = Scope.coerce(scope).rule_scope()
        ids = list(dict.fromkeys(hospitality_ids))
        with self._apply("add_hospitalities_at_scope", scope) as conn:
            self._require_hospitalities(conn, ids)
            return [hosp_db.upsert_assignment(conn, h, scope, names, actor) for h in ids]

    def remove_hospitalities_at_scope(
        self,
        scope: Scope | dict[str, Any],
        hospitality_ids: list[int] | None = None,
        actor: str | None = None,
    ) -> int:
        """Invalidate assignments at `scope`: the given hospitalities, or all of them."""
        scope = Scope.coerce(scope).rule_scope()
        with self._apply("remove_hospitalities_at_scope", scope) as conn:
            return hosp_db.invalidate_assignments_at_scope(conn, scope, hospitality_ids, actor)

    # --- hospitality catalogue ---

    def create_hospitality(self, data: HospitalityInput) -> Hospitality:
        with self._apply("create_hospitality") as conn:
            return hosp_db.create_hospitality(conn, data)

    def update_hospitality(self, hospitality_id: int, patch: HospitalityPatch) -> Hospitality:
        with self._apply("update_hospitality", passthrough=(InvalidRequestError, NotFoundError)) as conn:
            hospitality = hosp_db.update_hospitality(conn, hospitality_id, patch)
            if hospitality is None:
                raise NotFoundError(f"hospitality {hospitality_id} not found")
        return hospitality

    def deactivate_hospitality(self, hospitality_id: int) -> None:
        with self._apply("deactivate_hospitality", passthrough=(InvalidRequestError, NotFoundError)) as conn:
            if not hosp_db.deactivate_hospitality(conn, hospitality_id):
                raise NotFoundError(f"hospitality {hospitality_id} not found")

    # --- legacy per-ticket records ---

    def set_legacy_markup(self, data: LegacyTicketMarkupInput) -> LegacyTicketMarkup:
        with self._apply("set_legacy_markup") as conn:
            return legacy_db.upsert_legacy_markup(conn, data)

    def remove_legacy_markup(self, event_id: str, ticket_id: str) -> None:
        with self._apply("remove_legacy_markup", passthrough=(InvalidRequestError, NotFoundError)) as conn:
            if not legacy_db.deactivate_legacy_markup(conn, event_id, ticket_id):
                raise NotFoundError(f"no ticket markup for event {event_id} ticket {ticket_id}")

    def set_legacy_hospitalities(self, event_id: str, ticket_id: str, hospitality_ids: list[int]) -> ReplaceResult:
        if not event_id or not ticket_id:
            raise InvalidRequestError("event_id and ticket_id are required")
        with self._apply("set_legacy_hospitalities") as conn:
            self._require_hospitalities(conn, hospitality_ids)
            deleted, inserted = legacy_db.set_legacy_hospitalities(conn, event_id, ticket_id, hospitality_ids)
        return ReplaceResult(deleted_count=deleted, inserted_count=inserted)
