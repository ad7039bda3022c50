"""Markup rules: resolve, scope edits, batch, admin CRUD."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ticketrules.api.deps import get_actor, get_editor, get_resolver, get_store
from ticketrules.api.schemas import (
    EventMarkupsResponse,
    EventResolveRequest,
    MarkupBatchBody,
    MarkupBatchResponse,
    MarkupResolveResponse,
    MarkupRuleBody,
    MarkupRuleListResponse,
    MarkupRuleSaved,
    MarkupScopeReplaceBody,
    MessageResponse,
    RemovedResponse,
    ReplaceResponse,
    ScopeBody,
    scope_names,
)
from ticketrules.editor import BatchRuleEditor
from ticketrules.errors import NotFoundError
from ticketrules.models import Level, MarkupRule, MarkupRulePatch, Resolution
from ticketrules.resolver import Resolver
from ticketrules.storage import RuleStore
from ticketrules.storage.markup_rules import get_markup_rule, list_markup_rules, markup_stats

router = APIRouter(prefix="/markup-rules", tags=["markup"])


@router.get("", response_model=MarkupRuleListResponse)
def list_rules(
    level: Level | None = None,
    sport_type: str | None = None,
    tournament_id: str | None = None,
    team_id: str | None = None,
    event_id: str | None = None,
    ticket_id: str | None = None,
    is_active: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    store: RuleStore = Depends(get_store),
) -> MarkupRuleListResponse:
    filters = {
        "level": level,
        "sport_type": sport_type,
        "tournament_id": tournament_id,
        "team_id": team_id,
        "event_id": event_id,
        "ticket_id": ticket_id,
        "is_active": is_active,
    }
    with store.read() as conn:
        result = list_markup_rules(conn, filters, page=page, limit=limit)
    return MarkupRuleListResponse.model_validate(result)


@router.get("/stats")
def rule_stats(store: RuleStore = Depends(get_store)) -> dict:
    with store.read() as conn:
        return {"stats": markup_stats(conn)}


@router.post("/resolve", response_model=MarkupResolveResponse)
def resolve_markup(body: ScopeBody, resolver: Resolver = Depends(get_resolver)) -> MarkupResolveResponse:
    markup = resolver.resolve_markup(body.to_scope())
    return MarkupResolveResponse(markup=markup, message=Resolution(markup=markup).markup_message)


@router.post("/resolve/event", response_model=EventMarkupsResponse)
def resolve_event_markups(
    body: EventResolveRequest, resolver: Resolver = Depends(get_resolver)
) -> EventMarkupsResponse:
    return EventMarkupsResponse(markups=resolver.resolve_markups_for_event(body.to_scope(), body.ticket_ids))


@router.put("/scope", response_model=ReplaceResponse)
def replace_scope(
    body: MarkupScopeReplaceBody,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> ReplaceResponse:
    """Replace whatever markup sits at the scope with `rules` (empty clears it)."""
    result = editor.replace_markup_at_scope(body.to_scope(), body.rules, scope_names(body), actor)
    return ReplaceResponse(deleted_count=result.deleted_count, inserted_count=result.inserted_count)


@router.delete("/scope", response_model=RemovedResponse)
def clear_scope(
    body: ScopeBody,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> RemovedResponse:
    return RemovedResponse(removed_count=editor.remove_markup_at_scope(body.to_scope(), actor))


@router.post("/batch", response_model=MarkupBatchResponse)
def add_batch(
    body: MarkupBatchBody,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> MarkupBatchResponse:
    saved = editor.add_markup_rules([r.to_input() for r in body.rules], actor)
    created = sum(1 for _, c in saved if c)
    return MarkupBatchResponse(
        rules=[rule for rule, _ in saved], created_count=created, updated_count=len(saved) - created
    )


@router.post("", response_model=MarkupRuleSaved)
def upsert_rule(
    body: MarkupRuleBody,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> MarkupRuleSaved:
    """Create a rule, or update the active rule already at the same scope."""
    rule, created = editor.create_or_update_rule(body.to_input(), actor)
    return MarkupRuleSaved(rule=rule, created=created)


@router.get("/{rule_id}", response_model=MarkupRule)
def get_rule(rule_id: int, store: RuleStore = Depends(get_store)) -> MarkupRule:
    with store.read() as conn:
        rule = get_markup_rule(conn, rule_id)
    if rule is None:
        raise NotFoundError(f"markup rule {rule_id} not found")
    return rule


@router.put("/{rule_id}", response_model=MarkupRule)
def update_rule(
    rule_id: int,
    body: MarkupRulePatch,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> MarkupRule:
    return editor.update_rule(rule_id, body, actor)


@router.delete("/{rule_id}", response_model=MessageResponse)
def delete_rule(
    rule_id: int,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> MessageResponse:
    editor.delete_rule(rule_id, actor)
    return MessageResponse(message=f"Markup rule {rule_id} deactivated")
