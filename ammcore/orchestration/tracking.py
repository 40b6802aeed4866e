"""Request sequencing and tagged last-writer-wins caches.

A new request bumps the sequence number; a completion is applied only if it
still carries the latest sequence number and the inputs that produced it still
match what the caller currently wants. Everything else is dropped on arrival.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, Hashable, TypeVar

from ammcore.logging import log

T = TypeVar("T")


class RequestSequencer:
    """Monotonic logical clock, one per request stream (quotes, reserves, ...)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._counter = itertools.count(1)
        self._latest = 0

    def next(self) -> int:
        self._latest = next(self._counter)
        return self._latest

    @property
    def latest(self) -> int:
        return self._latest

    def is_latest(self, sequence: int) -> bool:
        return sequence == self._latest


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    sequence: int
    tag: Hashable
    value: T
    stored_at: str


class TaggedCache(Generic[T]):
    """Single-slot cache keyed by the inputs that produced its value."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entry: CacheEntry[T] | None = None
        self._discarded = 0

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    def offer(
        self,
        sequence: int,
        tag: Hashable,
        value: T,
        *,
        latest: int | None = None,
        current_tag: Hashable | None = None,
    ) -> bool:
        """Store ``value`` unless a newer request superseded it or its inputs went stale.

        Returns whether the value was applied.
        """
        if latest is not None and sequence != latest:
            self._discard(sequence, tag, reason=f"superseded by sequence={latest}")
            return False
        if self._entry is not None and sequence < self._entry.sequence:
            self._discard(sequence, tag, reason=f"older than held sequence={self._entry.sequence}")
            return False
        if current_tag is not None and tag != current_tag:
            self._discard(sequence, tag, reason="inputs changed")
            return False
        self._entry = CacheEntry(sequence=sequence, tag=tag, value=value, stored_at=self._now_iso())
        return True

    def _discard(self, sequence: int, tag: Hashable, reason: str) -> None:
        self._discarded += 1
        log.debug(f"Discarded stale {self.name} result sequence={sequence} tag={tag} reason={reason}")

    def get(self, tag: Hashable | None = None) -> T | None:
        """Cached value, or None when nothing is held or it was produced for other inputs."""
        if self._entry is None:
            return None
        if tag is not None and self._entry.tag != tag:
            return None
        return self._entry.value

    @property
    def entry(self) -> CacheEntry[T] | None:
        return self._entry

    @property
    def discarded(self) -> int:
        return self._discarded

    def clear(self) -> None:
        self._entry = None

    def describe(self) -> dict[str, Any]:
        if self._entry is None:
            return {"name": self.name, "sequence": None, "discarded": self._discarded}
        return {
            "name": self.name,
            "sequence": self._entry.sequence,
            "tag": str(self._entry.tag),
            "stored_at": self._entry.stored_at,
            "discarded": self._discarded,
        }
