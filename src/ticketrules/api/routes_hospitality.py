"""Hospitality assignments (hierarchical) and the hospitality catalogue."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ticketrules.api.deps import get_actor, get_editor, get_resolver, get_store
from ticketrules.api.schemas import (
    AssignmentBody,
    AssignmentListResponse,
    AssignmentSaved,
    AssignmentScopeBody,
    AssignmentScopeDeleteBody,
    AssignmentsSaved,
    EventHospitalitiesResponse,
    EventResolveRequest,
    HospitalityListResponse,
    HospitalityResolveResponse,
    MessageResponse,
    RemovedResponse,
    ReplaceResponse,
    ScopeBody,
    scope_names,
)
from ticketrules.editor import BatchRuleEditor
from ticketrules.errors import NotFoundError
from ticketrules.models import Hospitality, HospitalityInput, HospitalityPatch, Level
from ticketrules.resolver import Resolver
from ticketrules.storage import RuleStore
from ticketrules.storage.hospitalities import get_hospitality, hospitality_stats, list_assignments, list_hospitalities

assignments = APIRouter(prefix="/hospitality-assignments", tags=["hospitality"])
catalogue = APIRouter(prefix="/hospitalities", tags=["hospitality"])


# --- assignments ---


@assignments.get("", response_model=AssignmentListResponse)
def list_hospitality_assignments(
    level: Level | None = None,
    sport_type: str | None = None,
    tournament_id: str | None = None,
    team_id: str | None = None,
    event_id: str | None = None,
    ticket_id: str | None = None,
    hospitality_id: int | None = None,
    is_active: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    store: RuleStore = Depends(get_store),
) -> AssignmentListResponse:
    filters = {
        "level": level,
        "sport_type": sport_type,
        "tournament_id": tournament_id,
        "team_id": team_id,
        "event_id": event_id,
        "ticket_id": ticket_id,
        "hospitality_id": hospitality_id,
        "is_active": is_active,
    }
    with store.read() as conn:
        result = list_assignments(conn, filters, page=page, limit=limit)
    return AssignmentListResponse.model_validate(result)


@assignments.get("/stats")
def assignment_stats(store: RuleStore = Depends(get_store)) -> dict:
    with store.read() as conn:
        return {"stats": hospitality_stats(conn)}


@assignments.post("/resolve", response_model=HospitalityResolveResponse)
def resolve_hospitalities(
    body: ScopeBody, resolver: Resolver = Depends(get_resolver)
) -> HospitalityResolveResponse:
    resolved = resolver.resolve_hospitalities(body.to_scope())
    return HospitalityResolveResponse(hospitalities=resolved, total=len(resolved))


@assignments.post("/resolve/event", response_model=EventHospitalitiesResponse)
def resolve_event_hospitalities(
    body: EventResolveRequest, resolver: Resolver = Depends(get_resolver)
) -> EventHospitalitiesResponse:
    return EventHospitalitiesResponse(
        hospitalities=resolver.resolve_hospitalities_for_event(body.to_scope(), body.ticket_ids)
    )


@assignments.put("/scope", response_model=ReplaceResponse)
def replace_scope(
    body: AssignmentScopeBody,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> ReplaceResponse:
    """Make `hospitality_ids` the exact set at the scope (empty clears it)."""
    result = editor.replace_hospitalities_at_scope(body.to_scope(), body.hospitality_ids, scope_names(body), actor)
    return ReplaceResponse(deleted_count=result.deleted_count, inserted_count=result.inserted_count)


@assignments.delete("/scope", response_model=RemovedResponse)
def clear_scope(
    body: AssignmentScopeDeleteBody,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> RemovedResponse:
    removed = editor.remove_hospitalities_at_scope(body.to_scope(), body.hospitality_ids, actor)
    return RemovedResponse(removed_count=removed)


@assignments.post("/batch", response_model=AssignmentsSaved)
def add_batch(
    body: AssignmentScopeBody,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> AssignmentsSaved:
    saved = editor.add_hospitalities_at_scope(body.to_scope(), body.hospitality_ids, scope_names(body), actor)
    return AssignmentsSaved(assignments=[a for a, _ in saved], created_count=sum(1 for _, c in saved if c))


@assignments.post("", response_model=AssignmentSaved)
def upsert_assignment(
    body: AssignmentBody,
    editor: BatchRuleEditor = Depends(get_editor),
    actor: str | None = Depends(get_actor),
) -> AssignmentSaved:
    assignment, created = editor.create_or_update_assignment(
        body.hospitality_id, body.to_scope(), scope_names(body), actor
    )
    return AssignmentSaved(assignment=assignment, created=created)


# --- catalogue ---


@catalogue.get("", response_model=HospitalityListResponse)
def list_catalogue(active_only: bool = False, store: RuleStore = Depends(get_store)) -> HospitalityListResponse:
    with store.read() as conn:
        items = list_hospitalities(conn, active_only=active_only)
    return HospitalityListResponse(hospitalities=items, total=len(items))


@catalogue.post("", response_model=Hospitality, status_code=201)
def create_catalogue_item(body: HospitalityInput, editor: BatchRuleEditor = Depends(get_editor)) -> Hospitality:
    return editor.create_hospitality(body)


@catalogue.get("/{hospitality_id}", response_model=Hospitality)
def get_catalogue_item(hospitality_id: int, store: RuleStore = Depends(get_store)) -> Hospitality:
    with store.read() as conn:
        item = get_hospitality(conn, hospitality_id)
    if item is None:
        raise NotFoundError(f"hospitality {hospitality_id} not found")
    return item


@catalogue.put("/{hospitality_id}", response_model=Hospitality)
def update_catalogue_item(
    hospitality_id: int, body: HospitalityPatch, editor: BatchRuleEditor = Depends(get_editor)
) -> Hospitality:
    return editor.update_hospitality(hospitality_id, body)


@catalogue.delete("/{hospitality_id}", response_model=MessageResponse)
def deactivate_catalogue_item(hospitality_id: int, editor: BatchRuleEditor = Depends(get_editor)) -> MessageResponse:
    editor.deactivate_hospitality(hospitality_id)
    return MessageResponse(message=f"Hospitality {hospitality_id} deactivated")
