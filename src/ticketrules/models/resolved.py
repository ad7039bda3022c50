"""Resolution results and the precedence table shared by both strategies."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field

from ticketrules.models.rules import MarkupType
from ticketrules.models.scope import Level, ScopeNames


class SourceKind(str, Enum):
    LEGACY = "legacy"
    HIERARCHICAL = "hierarchical"


class Tier(NamedTuple):
    source: SourceKind
    level: Level


# First tier holding a candidate wins. Legacy per-ticket records outrank
# everything in the hierarchy.
PRECEDENCE: tuple[Tier, ...] = (
    Tier(SourceKind.LEGACY, Level.TICKET),
    Tier(SourceKind.HIERARCHICAL, Level.TICKET),
    Tier(SourceKind.HIERARCHICAL, Level.EVENT),
    Tier(SourceKind.HIERARCHICAL, Level.TEAM),
    Tier(SourceKind.HIERARCHICAL, Level.TOURNAMENT),
    Tier(SourceKind.HIERARCHICAL, Level.SPORT),
)

class ResolvedMarkup(BaseModel):
    level: Level
    source: SourceKind
    rule_id: int
    markup_type: MarkupType
    markup_amount: Decimal
    names: ScopeNames | None = None

    @property
    def tier(self) -> Tier:
        return Tier(self.source, self.level)


class MatchedLevel(BaseModel):
    level: Level
    source: SourceKind
    assignment_id: int


class ResolvedHospitality(BaseModel):
    hospitality_id: int
    name: str
    description: str | None = None
    sort_order: int = 0
    level: Level
    source: SourceKind
    assignment_id: int
    matched_levels: list[MatchedLevel] = Field(default_factory=list)


class Resolution(BaseModel):
    markup: ResolvedMarkup | None = None
    hospitalities: list[ResolvedHospitality] = Field(default_factory=list)

    @property
    def markup_message(self) -> str:
        if self.markup is None:
            return "No markup rule found for this ticket"
        return f"Markup resolved at '{self.markup.level.value}' level (source: {self.markup.source.value})"
