"""Winner (markup) and Union (hospitality) selection over the precedence table."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from ticketrules.models.resolved import PRECEDENCE, Tier

log = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Candidate(Generic[T]):
    """One stored record that matched the scope, tagged with the tier it came from."""

    tier: Tier
    record_id: int
    value: T
    key: Any = None  # dedupe key for union selection (hospitality id)


@dataclass
class Merged(Generic[T]):
    """Union result for one key: the most specific candidate plus every tier that matched."""

    best: Candidate[T]
    matches: list[Candidate[T]]


class SelectionStrategy(ABC):
    def __init__(self, precedence: tuple[Tier, ...] = PRECEDENCE) -> None:
        self.precedence = precedence
        self._rank = {tier: i for i, tier in enumerate(precedence)}

    def rank(self, candidate: Candidate[Any]) -> tuple[int, int]:
        return self._rank.get(candidate.tier, len(self.precedence)), candidate.record_id

    @abstractmethod
    def select(self, candidates: list[Candidate[T]]) -> Any:
        ...


class WinnerStrategy(SelectionStrategy):
    """First tier of the precedence table holding a candidate wins."""

    def select(self, candidates: list[Candidate[T]]) -> Candidate[T] | None:
        ranked = sorted((c for c in candidates if c.tier in self._rank), key=self.rank)
        if not ranked:
            return None
        winner = ranked[0]
        tied = [c for c in ranked if c.tier == winner.tier]
        if len(tied) > 1:
            # Uniqueness is enforced on write; this only happens with hand-edited data.
            log.warning(
                "duplicate_active_rules",
                source=winner.tier.source.value,
                level=winner.tier.level.value,
                ids=[c.record_id for c in tied],
                chosen=winner.record_id,
            )
        return winner


class UnionStrategy(SelectionStrategy):
    """Every candidate contributes; duplicates by key keep their most specific tier."""

    def select(self, candidates: list[Candidate[T]]) -> list[Merged[T]]:
        grouped: dict[Any, list[Candidate[T]]] = {}
        for c in sorted((c for c in candidates if c.tier in self._rank), key=self.rank):
            grouped.setdefault(c.key, []).append(c)
        return [Merged(best=matches[0], matches=matches) for matches in grouped.values()]
