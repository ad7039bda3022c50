"""Price composition and pricing sessions."""

from ticketrules.pricing.composer import PriceComposer, PriceQuote, compose_price
from ticketrules.pricing.session import ListingItem, PricingSession, SessionRegistry

__all__ = ["PriceComposer", "PriceQuote", "compose_price", "ListingItem", "PricingSession", "SessionRegistry"]
