"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from ticketrules.models import (
    Hospitality,
    HospitalityAssignment,
    LegacyTicketMarkup,
    MarkupRule,
    MarkupRuleInput,
    MarkupValue,
    ResolvedHospitality,
    ResolvedMarkup,
    Scope,
    ScopeNames,
)
from ticketrules.models.scope import SCOPE_FIELDS
from ticketrules.pricing import PriceQuote


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. invalid_scope, not_found, batch_failed")


# --- Scope ---
class ScopeBody(BaseModel):
    """Flat scope fields. Validation (required sport_type, ancestor keys) happens in to_scope()."""

    sport_type: str | None = None
    tournament_id: str | None = None
    team_id: str | None = None
    event_id: str | None = None
    ticket_id: str | None = None

    def to_scope(self) -> Scope:
        return Scope.coerce({k: getattr(self, k) for k in SCOPE_FIELDS})


def scope_names(body: ScopeNames) -> ScopeNames:
    """Display names carried on a request body."""
    return ScopeNames(**{f: getattr(body, f) for f in ScopeNames.model_fields})


# --- Resolution ---
class ResolveResponse(BaseModel):
    markup: ResolvedMarkup | None = None
    hospitalities: list[ResolvedHospitality] = Field(default_factory=list)
    message: str


class MarkupResolveResponse(BaseModel):
    markup: ResolvedMarkup | None = None
    message: str


class HospitalityResolveResponse(BaseModel):
    hospitalities: list[ResolvedHospitality]
    total: int


class EventResolveRequest(ScopeBody):
    ticket_ids: list[str] = Field(..., min_length=1)


class EventMarkupsResponse(BaseModel):
    markups: dict[str, ResolvedMarkup | None]


class EventHospitalitiesResponse(BaseModel):
    hospitalities: dict[str, list[ResolvedHospitality]]


# --- Markup rules ---
class MarkupRuleBody(ScopeBody, ScopeNames, MarkupValue):
    def to_input(self) -> MarkupRuleInput:
        return MarkupRuleInput(
            scope=self.to_scope(),
            names=scope_names(self),
            markup_type=self.markup_type,
            markup_amount=self.markup_amount,
            is_active=self.is_active,
        )


class MarkupRuleSaved(BaseModel):
    rule: MarkupRule
    created: bool


class MarkupScopeReplaceBody(ScopeBody, ScopeNames):
    rules: list[MarkupValue] = Field(default_factory=list, description="Zero or one rule")


class MarkupBatchBody(BaseModel):
    rules: list[MarkupRuleBody] = Field(..., min_length=1)


class MarkupBatchResponse(BaseModel):
    rules: list[MarkupRule]
    created_count: int
    updated_count: int


class Pagination(BaseModel):
    current_page: int
    per_page: int
    total_records: int
    total_pages: int
    has_more: bool


class MarkupRuleListResponse(BaseModel):
    data: list[MarkupRule]
    pagination: Pagination


class ReplaceResponse(BaseModel):
    deleted_count: int
    inserted_count: int


class RemovedResponse(BaseModel):
    removed_count: int


class MessageResponse(BaseModel):
    message: str


# --- Hospitality ---
class AssignmentScopeBody(ScopeBody, ScopeNames):
    hospitality_ids: list[int] = Field(default_factory=list)


class AssignmentScopeDeleteBody(ScopeBody):
    hospitality_ids: list[int] | None = Field(None, description="Omit to remove every hospitality at the scope")


class AssignmentBody(ScopeBody, ScopeNames):
    hospitality_id: int


class AssignmentSaved(BaseModel):
    assignment: HospitalityAssignment
    created: bool


class AssignmentsSaved(BaseModel):
    assignments: list[HospitalityAssignment]
    created_count: int


class AssignmentListResponse(BaseModel):
    data: list[HospitalityAssignment]
    pagination: Pagination


class HospitalityListResponse(BaseModel):
    hospitalities: list[Hospitality]
    total: int


# --- Legacy per-ticket records ---
class LegacyMarkupListResponse(BaseModel):
    ticket_markups: list[LegacyTicketMarkup]
    total: int


class LegacyHospitalitiesBody(BaseModel):
    event_id: str = Field(..., min_length=1)
    ticket_id: str = Field(..., min_length=1)
    hospitality_ids: list[int] = Field(default_factory=list)


# --- Pricing ---
class QuoteRequest(ScopeBody):
    face_value: Decimal = Field(..., ge=0)
    ticket_currency: str
    display_currency: str | None = None


class QuoteItem(ScopeBody):
    face_value: Decimal = Field(..., ge=0)
    ticket_currency: str


class QuotesRequest(BaseModel):
    display_currency: str | None = None
    items: list[QuoteItem] = Field(..., min_length=1)


class QuotesResponse(BaseModel):
    quotes: list[PriceQuote]
    session: str


class RateResponse(BaseModel):
    base: str
    target: str
    rate: Decimal | None = None
    available: bool
