"""
Per-list recommendation state with sequence-numbered updates.

Every fetch takes a sequence number from ``begin(source)`` before it starts
and hands it back to ``apply(source, seq, items)`` when it completes.  A
result is applied only if its sequence number is greater than that of the
last result applied to the same list, so a slow, older fetch can never
overwrite the result of a newer one.  Fetches of different lists never
interfere.

A list that has never been applied is "unresolved" and is simply absent
from ``resolved()``.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from property_insights.models.recommendation import Recommendation
from property_insights.taxonomy.tiers import RecommendationSource

logger = logging.getLogger(__name__)


@dataclass
class ListState:
    items: Optional[list[Recommendation]] = None
    applied_seq: int = 0


class RecommendationLists:
    """Holds the latest applied list per ``RecommendationSource``."""

    def __init__(self) -> None:
        self._seq = itertools.count(1)
        self._lists: dict[RecommendationSource, ListState] = {
            source: ListState() for source in RecommendationSource
        }

    def begin(self, source: RecommendationSource) -> int:
        """Reserve the sequence number for a fetch of ``source``."""
        return next(self._seq)

    def apply(self, source: RecommendationSource, seq: int, items: list[Recommendation]) -> bool:
        """Store ``items`` unless a newer fetch was already applied.

        Returns:
            True if applied, False if dropped as stale.
        """
        state = self._lists[source]
        if seq <= state.applied_seq:
            logger.debug(
                "Stale %s response dropped | seq=%d | applied_seq=%d",
                source.value, seq, state.applied_seq,
            )
            return False
        state.items = list(items)
        state.applied_seq = seq
        return True

    def get(self, source: RecommendationSource) -> Optional[list[Recommendation]]:
        items = self._lists[source].items
        return None if items is None else list(items)

    def resolved(self) -> dict[RecommendationSource, list[Recommendation]]:
        return {
            source: list(state.items)
            for source, state in self._lists.items()
            if state.items is not None
        }

    def find(self, rec_id: str) -> Optional[Recommendation]:
        for state in self._lists.values():
            for rec in state.items or ():
                if rec.id == rec_id:
                    return rec
        return None

    def update_where(
        self,
        predicate: Callable[[Recommendation], bool],
        fn: Callable[[Recommendation], Recommendation],
    ) -> int:
        """Replace every matching recommendation with ``fn(rec)``; return the count."""
        changed = 0
        for state in self._lists.values():
            if state.items is None:
                continue
            for i, rec in enumerate(state.items):
                if predicate(rec):
                    state.items[i] = fn(rec)
                    changed += 1
        return changed

    def clear(self) -> None:
        """Forget every list.  Sequence numbers keep increasing."""
        for source in self._lists:
            self._lists[source] = ListState(applied_seq=self._lists[source].applied_seq)
