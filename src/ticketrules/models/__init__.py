"""Canonical schema (Pydantic) - Scope, rules, hospitalities, resolution results."""

from ticketrules.models.resolved import (
    PRECEDENCE,
    MatchedLevel,
    Resolution,
    ResolvedHospitality,
    ResolvedMarkup,
    SourceKind,
    Tier,
)
from ticketrules.models.rules import (
    Hospitality,
    HospitalityAssignment,
    HospitalityInput,
    HospitalityPatch,
    LegacyTicketHospitality,
    LegacyTicketMarkup,
    LegacyTicketMarkupInput,
    MarkupRule,
    MarkupRuleInput,
    MarkupRulePatch,
    MarkupType,
    MarkupValue,
)
from ticketrules.models.scope import LEVEL_KEYS, SCOPE_FIELDS, SPECIFICITY, Level, Scope, ScopeNames

__all__ = [
    "Level",
    "Scope",
    "ScopeNames",
    "LEVEL_KEYS",
    "SCOPE_FIELDS",
    "SPECIFICITY",
    "MarkupType",
    "MarkupValue",
    "MarkupRule",
    "MarkupRuleInput",
    "MarkupRulePatch",
    "Hospitality",
    "HospitalityInput",
    "HospitalityPatch",
    "HospitalityAssignment",
    "LegacyTicketMarkup",
    "LegacyTicketMarkupInput",
    "LegacyTicketHospitality",
    "SourceKind",
    "Tier",
    "PRECEDENCE",
    "MatchedLevel",
    "ResolvedMarkup",
    "ResolvedHospitality",
    "Resolution",
]
