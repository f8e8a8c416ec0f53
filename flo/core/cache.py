"""Time-boxed snapshot cache for one resource kind.

One ``CachedResourceStore`` holds the "all items of kind X" snapshot for a
single kind. Derived views are computed by filtering that snapshot; they
never go to the network.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    fetched_at: float


class CachedResourceStore(Generic[T]):
    """Serves the current snapshot of one resource kind.

    A fetch happens at most once per validity window unless forced.
    Concurrent readers that miss the cache share a single in-flight fetch.
    Every mutation (invalidate, replace, mutate) bumps a generation counter
    and detaches any in-flight fetch, so a fetch that started before a write
    can never overwrite the state that write produced.
    """

    def __init__(
        self,
        kind: str,
        fetch: Callable[[], Awaitable[T]],
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize store.

        Args:
            kind: Resource kind name, used in logs
            fetch: Supplier of a fresh snapshot
            ttl: Validity window in seconds, fixed for the life of the store
            clock: Monotonic time source (injectable for tests)
        """
        self.kind = kind
        self.ttl = ttl
        self._fetch = fetch
        self._clock = clock
        self._entry: CacheEntry[T] | None = None
        self._generation = 0
        self._inflight: asyncio.Future | None = None
        self.fetch_count = 0

    @property
    def entry(self) -> CacheEntry[T] | None:
        return self._entry

    def is_valid(self) -> bool:
        return self._entry is not None and self._clock() - self._entry.fetched_at < self.ttl

    def peek(self) -> T | None:
        """Return the cached value regardless of age, or None when absent."""
        return self._entry.value if self._entry else None

    async def get_or_fetch(self, force_refresh: bool = False) -> T:
        """Return the cached value if still valid, otherwise fetch.

        Args:
            force_refresh: Skip the validity check and always fetch

        Returns:
            The snapshot

        Raises:
            Whatever the fetch function raised; the previous entry is left untouched
        """
        if not force_refresh and self.is_valid():
            logger.debug("Cache hit: %s", self.kind)
            return self._entry.value

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._fetch_and_store(self._generation))
            self._inflight.add_done_callback(self._on_fetch_done)
        return await asyncio.shield(self._inflight)

    async def _fetch_and_store(self, generation: int) -> T:
        self.fetch_count += 1
        try:
            value = await self._fetch()
        except Exception as e:
            logger.warning("Fetch failed for %s: %s", self.kind, e)
            raise
        # Check-and-replace with no await in between.
        if generation == self._generation:
            self._entry = CacheEntry(value, self._clock())
        else:
            logger.debug("Discarding superseded fetch for %s", self.kind)
        return value

    def _on_fetch_done(self, future: asyncio.Future) -> None:
        if self._inflight is future:
            self._inflight = None
        if not future.cancelled():
            future.exception()  # mark retrieved; awaiting callers still receive it

    def _bump(self) -> None:
        self._generation += 1
        self._inflight = None

    def invalidate(self) -> None:
        """Drop the entry; the next read fetches regardless of age."""
        self._bump()
        self._entry = None

    def replace(self, value: T) -> None:
        """Install a value as freshly fetched."""
        self._bump()
        self._entry = CacheEntry(value, self._clock())

    def mutate(self, patch: Callable[[T], T]) -> bool:
        """Apply ``patch`` to the cached value in place, keeping its fetch time.

        Returns:
            True if an entry existed and was patched
        """
        self._bump()
        if self._entry is None:
            return False
        self._entry = CacheEntry(patch(self._entry.value), self._entry.fetched_at)
        return True

    def stats(self) -> dict[str, Any]:
        age = self._clock() - self._entry.fetched_at if self._entry else None
        return {
            "kind": self.kind,
            "ttl": self.ttl,
            "cached": self._entry is not None,
            "valid": self.is_valid(),
            "age_seconds": age,
            "fetch_count": self.fetch_count,
        }
