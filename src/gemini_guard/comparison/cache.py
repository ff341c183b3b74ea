"""Time-bounded cache for the comparison corpus."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
import threading
import time
from typing import Any

from gemini_guard.constants import CANDIDATE_CACHE_TTL

log = logging.getLogger(__name__)

type Corpus = Sequence[Any]


class CandidateCache:
    """Holds one loaded corpus until ``ttl_seconds`` have passed.

    Instances are owned by the caller and passed in explicitly; nothing is
    shared at module level. Expiry is a plain comparison of ``clock()``
    against ``loaded_at``, so tests can drive it with a fake clock.
    """

    def __init__(
        self,
        ttl_seconds: float = CANDIDATE_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must not be negative")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._value: Corpus | None = None
        self.loaded_at: float | None = None

    def is_fresh(self) -> bool:
        if self._value is None or self.loaded_at is None:
            return False
        return self._clock() - self.loaded_at < self.ttl_seconds

    def get(self, loader: Callable[[], Corpus]) -> Corpus:
        """Return the cached corpus, calling ``loader`` when stale or empty."""
        with self._lock:
            if self.is_fresh():
                return self._value  # type: ignore[return-value]
            value = tuple(loader())
            self._value = value
            self.loaded_at = self._clock()
            log.debug("Loaded %d corpus item(s) into the candidate cache.", len(value))
            return value

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
            self.loaded_at = None
