"""Error taxonomy shared by the store, resolver, editor and API."""

from __future__ import annotations

from typing import Any


class PricingError(Exception):
    """Base class. `code` is the machine-readable value returned in API error bodies."""

    code = "pricing_error"


class InvalidRequestError(PricingError, ValueError):
    """Input rejected before any store access."""

    code = "invalid_request"


class ScopeValidationError(InvalidRequestError):
    """Scope is missing sport_type or addresses a level without its ancestors."""

    code = "invalid_scope"


class NotFoundError(PricingError, LookupError):
    """A record addressed by id does not exist. Not used for "no rule applies"."""

    code = "not_found"


class BatchApplyError(PricingError):
    """A scope edit failed and was rolled back; the scope is unchanged."""

    code = "batch_failed"

    def __init__(self, message: str, *, scope: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.scope = scope or {}


class RateUnavailableError(PricingError):
    """The currency source could not supply a rate."""

    code = "rate_unavailable"
