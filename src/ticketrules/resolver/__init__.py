"""Rule resolution over the scope hierarchy."""

from ticketrules.resolver.resolver import Resolver
from ticketrules.resolver.strategies import Candidate, UnionStrategy, WinnerStrategy

__all__ = ["Resolver", "Candidate", "WinnerStrategy", "UnionStrategy"]
