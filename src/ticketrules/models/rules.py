"""MarkupRule, HospitalityAssignment, Hospitality and legacy records."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from ticketrules.models.scope import Level, Scope, ScopeNames


class MarkupType(str, Enum):
    FIXED = "fixed"  # amount in the reference currency
    PERCENTAGE = "percentage"  # percent of the converted base price


class MarkupValue(BaseModel):
    """Type and amount of one markup, without its scope."""

    markup_type: MarkupType = MarkupType.FIXED
    markup_amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    is_active: bool = True


class MarkupRuleInput(MarkupValue):
    """Create-or-update request for a single markup rule."""

    scope: Scope
    names: ScopeNames = Field(default_factory=ScopeNames)


class MarkupRulePatch(BaseModel):
    """Partial update of an existing rule by id. Scope is immutable."""

    markup_type: MarkupType | None = None
    markup_amount: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_active: bool | None = None


class _ScopedRecord(ScopeNames):
    id: int
    level: Level
    sport_type: str
    tournament_id: str | None = None
    team_id: str | None = None
    event_id: str | None = None
    ticket_id: str | None = None
    is_active: bool = True
    created_by: str | None = None
    updated_by: str | None = None
    created_at: int | None = None  # ms epoch
    updated_at: int | None = None  # ms epoch

    @property
    def scope(self) -> Scope:
        return Scope(
            sport_type=self.sport_type,
            tournament_id=self.tournament_id,
            team_id=self.team_id,
            event_id=self.event_id,
            ticket_id=self.ticket_id,
        )


class MarkupRule(_ScopedRecord):
    markup_type: MarkupType
    markup_amount: Decimal


class HospitalityAssignment(_ScopedRecord):
    hospitality_id: int
    hospitality_name: str | None = None


class HospitalityInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    is_active: bool = True
    sort_order: int = 0


class HospitalityPatch(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    is_active: bool | None = None
    sort_order: int | None = None


class Hospitality(HospitalityInput):
    id: int
    created_at: int | None = None
    updated_at: int | None = None


class LegacyTicketMarkupInput(BaseModel):
    """Flat per-ticket markup that predates the hierarchy."""

    event_id: str = Field(..., min_length=1)
    ticket_id: str = Field(..., min_length=1)
    markup_type: MarkupType = MarkupType.FIXED
    markup_price_usd: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    markup_percentage: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    base_price_usd: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    final_price_usd: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def _percentage_needs_value(self) -> LegacyTicketMarkupInput:
        if self.markup_type is MarkupType.PERCENTAGE and self.markup_percentage is None:
            raise ValueError("markup_percentage is required for percentage markups")
        return self


class LegacyTicketMarkup(LegacyTicketMarkupInput):
    id: int
    is_active: bool = True
    created_at: int | None = None
    updated_at: int | None = None

    @property
    def effective_amount(self) -> Decimal:
        """Percent value for percentage markups, reference-currency amount otherwise."""
        if self.markup_type is MarkupType.PERCENTAGE and self.markup_percentage is not None:
            return self.markup_percentage
        return self.markup_price_usd


class LegacyTicketHospitality(BaseModel):
    id: int
    event_id: str
    ticket_id: str
    hospitality_id: int
    is_active: bool = True
    created_at: int | None = None
    updated_at: int | None = None
