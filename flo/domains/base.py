"""Domain facade base class and the write-through resource collection."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from flo.core.cache import CachedResourceStore
from flo.core.constants import TTL_LONG
from flo.core.errors import UnknownResourceError
from flo.domains.endpoints import ResourceOps, RestResource

if TYPE_CHECKING:
    from flo.core.client import FloClient

Items = list[dict[str, Any]]


def parse_date(value: Any) -> date | None:
    """Parse an ISO-8601 date or datetime string to a date; None when absent or malformed."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def as_date(value: date | str) -> date:
    """Coerce a date argument given as a date or ISO-8601 string.

    Raises:
        ValueError: The value is missing or not a valid date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed


def numeric(item: dict[str, Any], field: str = "amount") -> float:
    """Numeric field value; missing, null or non-numeric counts as zero."""
    value = item.get(field)
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def contains(value: Any, pattern: str) -> bool:
    """Case-insensitive substring match that tolerates missing fields."""
    return isinstance(value, str) and pattern.lower() in value.lower()


class ResourceCollection:
    """One resource kind: its snapshot cache plus write-through mutations.

    Reads go through the ``CachedResourceStore``. Writes go straight to the
    collaborator functions and touch the cache only after they succeed:
    ``create`` invalidates, ``update`` / ``delete`` / ``apply`` patch the
    single item in place. A failed write leaves the cache as it was.
    """

    def __init__(
        self,
        kind: str,
        ops: ResourceOps,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
        id_field: str = "id",
    ):
        self.kind = kind
        self.ops = ops
        self.id_field = id_field
        self.store: CachedResourceStore[Items] = CachedResourceStore(kind, ops.list, ttl, clock)

    async def all(self, force_refresh: bool = False) -> Items:
        return await self.store.get_or_fetch(force_refresh)

    def items(self) -> Items:
        """Current snapshot without touching the network (empty when absent)."""
        return self.store.peek() or []

    def find(self, item_id: str) -> dict[str, Any] | None:
        for item in self.items():
            if item.get(self.id_field) == item_id:
                return item
        return None

    async def get(self, item_id: str) -> dict[str, Any]:
        """Return one item from the valid snapshot, or fetch it by id."""
        if self.store.is_valid():
            cached = self.find(item_id)
            if cached is not None:
                return cached
        return await self.ops.get_by_id(item_id)

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        created = await self.ops.create(data)
        self.store.invalidate()
        return created

    async def update(self, item_id: str, data: dict[str, Any]) -> dict[str, Any]:
        updated = await self.ops.update(item_id, data)
        self._patch(item_id, updated)
        return updated

    async def delete(self, item_id: str) -> None:
        await self.ops.delete(item_id)
        self.store.mutate(lambda items: [i for i in items if i.get(self.id_field) != item_id])

    async def apply(self, item_id: str, call: Callable[[], Awaitable[Any]]) -> Any:
        """Run a custom single-item action and patch its result into the snapshot.

        Args:
            item_id: Item the action targets
            call: Zero-argument coroutine function performing the request
        """
        result = await call()
        self._patch(item_id, result)
        return result

    def invalidate(self) -> None:
        self.store.invalidate()

    def _patch(self, item_id: str, updated: Any) -> None:
        """Replace one item in place; fall back to invalidation when the shape is unknown."""
        if not isinstance(updated, dict):
            self.store.invalidate()
            return

        found = False

        def replace_item(items: Items) -> Items:
            nonlocal found
            patched = []
            for item in items:
                if item.get(self.id_field) == item_id:
                    found = True
                    patched.append({**item, **updated})
                else:
                    patched.append(item)
            return patched

        if self.store.mutate(replace_item) and not found:
            self.store.invalidate()


class DomainFacade:
    """Base class for business-module facades.

    Subclasses register one collection per list-shaped resource kind in
    ``__init__`` and add derived views over the snapshots. Views are pure:
    they read ``items()`` and never reach the network.
    """

    def __init__(
        self,
        domain_id: str,
        client: "FloClient",
        ops: dict[str, ResourceOps] | None = None,
    ):
        """Initialize facade.

        Args:
            domain_id: Registry name (e.g. "crm")
            client: Owning client; provides the transport, TTL tiers and clock
            ops: Per-kind collaborator overrides, keyed by resource kind
        """
        self.domain_id = domain_id
        self.client = client
        self.collections: dict[str, ResourceCollection] = {}
        self.resources: dict[str, RestResource] = {}
        self._ops_overrides = ops or {}
        self.logger = logging.getLogger(f"domain.{domain_id}")

    def add_collection(
        self,
        kind: str,
        path: str,
        tier: str,
        update_method: str = "PUT",
        create_path: str | None = None,
    ) -> ResourceCollection:
        """Create the cached collection for one resource kind.

        Args:
            kind: Resource kind name
            path: REST base path, used unless ``ops`` overrides this kind
            tier: TTL_SHORT or TTL_LONG
            update_method: HTTP verb the backend expects for updates
            create_path: POST target when it differs from ``path``
        """
        if kind in self.collections:
            raise ValueError(f"Collection {kind} already registered on {self.domain_id}")
        resource = RestResource(self.client.transport, path, update_method=update_method, create_path=create_path)
        self.resources[kind] = resource
        ops = self._ops_overrides.get(kind) or resource.ops()
        collection = ResourceCollection(kind, ops, self.client.ttl(tier), self.client.clock)
        self.collections[kind] = collection
        self.logger.debug("Registered %s (%s TTL)", kind, "long" if tier == TTL_LONG else "short")
        return collection

    def collection(self, kind: str) -> ResourceCollection:
        try:
            return self.collections[kind]
        except KeyError:
            raise UnknownResourceError(f"Unknown resource kind '{kind}' for {self.domain_id}") from None

    async def initialize(self):
        """Initialize facade resources."""
        pass

    async def shutdown(self):
        """Cleanup facade resources."""
        pass

    def clear_cache(self) -> None:
        for collection in self.collections.values():
            collection.invalidate()
        self.logger.debug("Cache cleared")

    def invalidate_cache(self, kind: str | None = None) -> None:
        """Invalidate one kind, or every kind when ``kind`` is None."""
        if kind is None:
            self.clear_cache()
        else:
            self.collection(kind).invalidate()

    async def refresh_data(self) -> None:
        """Force-refresh every collection concurrently.

        Raises:
            The first fetch error; collections that succeeded keep their new snapshot
        """
        await asyncio.gather(*(c.all(force_refresh=True) for c in self.collections.values()))

    def cache_stats(self) -> dict[str, Any]:
        return {kind: c.store.stats() for kind, c in self.collections.items()}
