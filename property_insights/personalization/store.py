"""
Behavior-profile storage.

A ``BehaviorStore`` owns one ``BehaviorProfile`` per user.  Writers never
mutate a profile they obtained from ``get``; they pass a mutation function to
``update`` which the store applies atomically per call.  ``InMemoryBehaviorStore``
serialises updates with a single lock, so rapid successive tracking calls
for the same user cannot lose history entries.
"""

from __future__ import annotations

import threading
from collections import Counter
from typing import Callable, Protocol, TypeVar

from property_insights.models.behavior import BehaviorProfile

T = TypeVar("T")


class BehaviorStore(Protocol):
    """Storage boundary for behavior profiles."""

    def get(self, user_id: str) -> BehaviorProfile: ...

    def update(self, user_id: str, fn: Callable[[BehaviorProfile], T]) -> T: ...

    def reset(self, user_id: str) -> None: ...

    def view_counts(self) -> dict[str, int]: ...


class InMemoryBehaviorStore:
    """Thread-safe, process-local ``BehaviorStore``."""

    def __init__(self) -> None:
        self._profiles: dict[str, BehaviorProfile] = {}
        self._lock = threading.Lock()

    def _profile(self, user_id: str) -> BehaviorProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            profile = BehaviorProfile(user_id=user_id)
            self._profiles[user_id] = profile
        return profile

    def get(self, user_id: str) -> BehaviorProfile:
        """Return a deep copy of the user's profile (fresh default if unknown)."""
        with self._lock:
            return self._profile(user_id).model_copy(deep=True)

    def update(self, user_id: str, fn: Callable[[BehaviorProfile], T]) -> T:
        """Apply ``fn`` to the stored profile under the store lock."""
        with self._lock:
            return fn(self._profile(user_id))

    def reset(self, user_id: str) -> None:
        with self._lock:
            self._profiles[user_id] = BehaviorProfile(user_id=user_id)

    def view_counts(self) -> dict[str, int]:
        """Property id -> number of views across every profile."""
        with self._lock:
            counts: Counter[str] = Counter()
            for profile in self._profiles.values():
                counts.update(v.property_id for v in profile.viewed_properties)
            return dict(counts)
