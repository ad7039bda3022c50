"""Legacy per-ticket markups and hospitalities (pre-hierarchy records)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ticketrules.api.deps import get_editor, get_store
from ticketrules.api.schemas import LegacyHospitalitiesBody, LegacyMarkupListResponse, MessageResponse, ReplaceResponse
from ticketrules.editor import BatchRuleEditor
from ticketrules.models import LegacyTicketMarkup, LegacyTicketMarkupInput
from ticketrules.storage import RuleStore
from ticketrules.storage.legacy import list_legacy_markups

router = APIRouter(tags=["legacy"])


@router.get("/ticket-markups", response_model=LegacyMarkupListResponse)
def list_ticket_markups(
    event_id: str | None = None,
    limit: int = Query(500, ge=1, le=5000),
    store: RuleStore = Depends(get_store),
) -> LegacyMarkupListResponse:
    with store.read() as conn:
        items = list_legacy_markups(conn, event_id=event_id, limit=limit)
    return LegacyMarkupListResponse(ticket_markups=items, total=len(items))


@router.put("/ticket-markups", response_model=LegacyTicketMarkup)
def put_ticket_markup(
    body: LegacyTicketMarkupInput, editor: BatchRuleEditor = Depends(get_editor)
) -> LegacyTicketMarkup:
    return editor.set_legacy_markup(body)


@router.delete("/ticket-markups/{event_id}/{ticket_id}", response_model=MessageResponse)
def delete_ticket_markup(
    event_id: str, ticket_id: str, editor: BatchRuleEditor = Depends(get_editor)
) -> MessageResponse:
    editor.remove_legacy_markup(event_id, ticket_id)
    return MessageResponse(message=f"Ticket markup for {event_id}/{ticket_id} deactivated")


@router.put("/ticket-hospitalities", response_model=ReplaceResponse)
def put_ticket_hospitalities(
    body: LegacyHospitalitiesBody, editor: BatchRuleEditor = Depends(get_editor)
) -> ReplaceResponse:
    result = editor.set_legacy_hospitalities(body.event_id, body.ticket_id, body.hospitality_ids)
    return ReplaceResponse(deleted_count=result.deleted_count, inserted_count=result.inserted_count)
