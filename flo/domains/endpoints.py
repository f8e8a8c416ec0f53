"""Thin REST catalogue: turns a base path into the five collaborator calls.

The request layer itself never builds URLs; facades receive ready-made
``ResourceOps`` from here (or from a caller-supplied override).
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from flo.core.auth import unwrap_data
from flo.core.transport import TransportPipeline


@dataclass
class ResourceOps:
    """The network collaborators a resource collection delegates to."""
    list: Callable[[], Awaitable[list]]
    get_by_id: Callable[[str], Awaitable[dict]]
    create: Callable[[dict], Awaitable[dict]]
    update: Callable[[str, dict], Awaitable[dict]]
    delete: Callable[[str], Awaitable[None]]


def _as_items(body: Any) -> list:
    """Accept a bare array, a ``{data: [...]}`` envelope, or a paginated ``{data, meta}``."""
    data = unwrap_data(body)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("items", "results"):
            if isinstance(data.get(key), list):
                return data[key]
    return []


class RestResource:
    """CRUD calls for one collection endpoint."""

    def __init__(
        self,
        transport: TransportPipeline,
        path: str,
        update_method: str = "PUT",
        create_path: str | None = None,
    ):
        self.transport = transport
        self.path = path.rstrip("/")
        self.update_method = update_method
        self.create_path = create_path or self.path

    def item_path(self, item_id: str) -> str:
        return f"{self.path}/{item_id}"

    async def list(self) -> list:
        resp = await self.transport.get(self.path)
        return _as_items(resp.data)

    async def get_by_id(self, item_id: str) -> dict:
        resp = await self.transport.get(self.item_path(item_id))
        return unwrap_data(resp.data)

    async def create(self, data: dict) -> dict:
        resp = await self.transport.post(self.create_path, data)
        return unwrap_data(resp.data)

    async def update(self, item_id: str, data: dict) -> dict:
        if self.update_method == "PATCH":
            resp = await self.transport.patch(self.item_path(item_id), data)
        else:
            resp = await self.transport.put(self.item_path(item_id), data)
        return unwrap_data(resp.data)

    async def delete(self, item_id: str) -> None:
        await self.transport.delete(self.item_path(item_id))

    async def action(self, item_id: str, action: str, data: dict | None = None, method: str = "POST") -> Any:
        """Call a per-item action endpoint such as ``/{id}/approve``."""
        path = f"{self.item_path(item_id)}/{action}"
        if method == "PUT":
            resp = await self.transport.put(path, data or {})
        elif method == "PATCH":
            resp = await self.transport.patch(path, data or {})
        else:
            resp = await self.transport.post(path, data or {})
        return unwrap_data(resp.data)

    def ops(self) -> ResourceOps:
        return ResourceOps(
            list=self.list,
            get_by_id=self.get_by_id,
            create=self.create,
            update=self.update,
            delete=self.delete,
        )
