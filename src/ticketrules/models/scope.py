"""Level, Scope - the five-level pricing hierarchy."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ticketrules.errors import ScopeValidationError


class Level(str, Enum):
    SPORT = "sport"
    TOURNAMENT = "tournament"
    TEAM = "team"
    EVENT = "event"
    TICKET = "ticket"


SCOPE_FIELDS: tuple[str, ...] = ("sport_type", "tournament_id", "team_id", "event_id", "ticket_id")

# Keys a rule at each level carries; every other scope key is stored as NULL.
# Teams are nested under a tournament. Event ids are globally unique, so events
# and their tickets hang directly off the sport.
LEVEL_KEYS: dict[Level, tuple[str, ...]] = {
    Level.SPORT: ("sport_type",),
    Level.TOURNAMENT: ("sport_type", "tournament_id"),
    Level.TEAM: ("sport_type", "tournament_id", "team_id"),
    Level.EVENT: ("sport_type", "event_id"),
    Level.TICKET: ("sport_type", "event_id", "ticket_id"),
}

# Most specific first.
SPECIFICITY: tuple[Level, ...] = (
    Level.TICKET,
    Level.EVENT,
    Level.TEAM,
    Level.TOURNAMENT,
    Level.SPORT,
)

# Admin display order (least specific first).
DISPLAY_ORDER: tuple[Level, ...] = tuple(reversed(SPECIFICITY))


class Scope(BaseModel):
    """Where a rule applies, or which ticket is being priced."""

    model_config = ConfigDict(frozen=True)

    sport_type: str
    tournament_id: str | None = None
    team_id: str | None = None
    event_id: str | None = None
    ticket_id: str | None = None

    @field_validator(*SCOPE_FIELDS, mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @classmethod
    def coerce(cls, value: Scope | dict[str, Any]) -> Scope:
        """Build a Scope from a mapping, raising ScopeValidationError on bad input."""
        if isinstance(value, Scope):
            return value
        if not isinstance(value, dict):
            raise ScopeValidationError(f"scope must be a mapping, got {type(value).__name__}")
        try:
            return cls.model_validate({k: value.get(k) for k in SCOPE_FIELDS})
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            raise ScopeValidationError(f"invalid scope ({fields or 'unknown field'})") from e

    def is_addressable(self, level: Level) -> bool:
        return all(getattr(self, key) for key in LEVEL_KEYS[level])

    def addressable_levels(self) -> list[Level]:
        """Levels this scope can match, most specific first."""
        return [level for level in SPECIFICITY if self.is_addressable(level)]

    @property
    def target_level(self) -> Level:
        """Most specific level whose own key is set (the level a new rule lands on)."""
        for level in SPECIFICITY:
            if getattr(self, LEVEL_KEYS[level][-1]):
                return level
        return Level.SPORT

    def at_level(self, level: Level) -> Scope:
        """Project onto the keys of `level`, dropping everything else."""
        if not self.is_addressable(level):
            missing = [k for k in LEVEL_KEYS[level] if not getattr(self, k)]
            raise ScopeValidationError(
                f"{level.value} level requires {', '.join(LEVEL_KEYS[level])} (missing: {', '.join(missing)})"
            )
        return Scope(**{key: getattr(self, key) for key in LEVEL_KEYS[level]})

    def rule_scope(self) -> Scope:
        """Normalized scope for storing a rule at this scope's target level."""
        return self.at_level(self.target_level)

    def key_values(self) -> tuple[str | None, ...]:
        return tuple(getattr(self, key) for key in SCOPE_FIELDS)

    def with_ticket(self, ticket_id: str) -> Scope:
        return Scope(**{**self.model_dump(), "ticket_id": ticket_id})

    @property
    def legacy_key(self) -> tuple[str, str] | None:
        """(event_id, ticket_id) when both are set; legacy records are keyed by it."""
        if self.event_id and self.ticket_id:
            return self.event_id, self.ticket_id
        return None


class ScopeNames(BaseModel):
    """Display names stored alongside a rule. Not used in resolution."""

    sport_name: str | None = None
    tournament_name: str | None = None
    team_name: str | None = None
    event_name: str | None = None
    ticket_name: str | None = None
