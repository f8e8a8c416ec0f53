"""Assets facade: assets, asset categories and assignments."""

from datetime import date, timedelta
from typing import Any

from flo.core.constants import DOMAIN_ASSETS, TTL_LONG, TTL_SHORT
from flo.domains.base import DomainFacade, Items, contains, numeric, parse_date

ASSET_STATUSES = ("active", "in_stock", "assigned", "maintenance", "retired")


def _asset_value(asset: dict[str, Any]) -> float:
    return numeric(asset, "current_value") or numeric(asset, "purchase_cost")


class AssetsFacade(DomainFacade):
    """Asset register with category and assignment tracking."""

    def __init__(self, client, ops=None):
        super().__init__(DOMAIN_ASSETS, client, ops)
        self.assets = self.add_collection("assets", "/assets/assets", TTL_SHORT)
        self.categories = self.add_collection("categories", "/assets/categories", TTL_LONG)
        self.assignments = self.add_collection("assignments", "/assets/assignments", TTL_SHORT)

    # ── Assets ────────────────────────────────────────────────────────

    def by_status(self, status: str) -> Items:
        return [a for a in self.assets.items() if a.get("status") == status]

    def by_category(self, category_id: str) -> Items:
        return [a for a in self.assets.items() if a.get("category_id") == category_id]

    def by_location(self, location: str) -> Items:
        return [a for a in self.assets.items() if contains(a.get("location"), location)]

    def by_name(self, pattern: str) -> Items:
        return [a for a in self.assets.items() if contains(a.get("name"), pattern)]

    def by_tag(self, pattern: str) -> Items:
        return [a for a in self.assets.items() if contains(a.get("asset_tag"), pattern)]

    def by_value_range(self, min_value: float | None = None, max_value: float | None = None) -> Items:
        """Assets whose current value (purchase cost when unset) lies in the inclusive range."""
        result = []
        for asset in self.assets.items():
            value = _asset_value(asset)
            if min_value is not None and value < min_value:
                continue
            if max_value is not None and value > max_value:
                continue
            result.append(asset)
        return result

    def depreciating(self) -> Items:
        return [
            a
            for a in self.assets.items()
            if a.get("depreciation_start") and a.get("current_value") is not None and a.get("purchase_cost") is not None
        ]

    def near_warranty_expiry(self, days: int = 30, today: date | None = None) -> Items:
        """Assets whose warranty ends between today and ``days`` from now, inclusive."""
        today = today or date.today()
        threshold = today + timedelta(days=days)
        result = []
        for asset in self.assets.items():
            expiry = parse_date(asset.get("warranty_expiry"))
            if expiry and today <= expiry <= threshold:
                result.append(asset)
        return result

    def summary(self) -> dict[str, Any]:
        assets = self.assets.items()
        total = len(assets)
        counts = {status: len(self.by_status(status)) for status in ASSET_STATUSES}
        total_value = sum(_asset_value(a) for a in assets)
        original_value = sum(numeric(a, "purchase_cost") for a in assets)
        return {
            "total_assets": total,
            "active_assets": counts["active"],
            "assigned_assets": counts["assigned"],
            "available_assets": counts["in_stock"] + counts["active"],
            "maintenance_assets": counts["maintenance"],
            "retired_assets": counts["retired"],
            "total_value": total_value,
            "depreciation": original_value - total_value,
            "assignment_rate": counts["assigned"] / total * 100 if total else 0.0,
        }

    def depreciation_summary(self) -> dict[str, float]:
        assets = self.assets.items()
        original = sum(numeric(a, "purchase_cost") for a in assets)
        current = sum(_asset_value(a) for a in assets)
        return {
            "total_original_value": original,
            "total_current_value": current,
            "total_depreciation": original - current,
            "depreciation_percentage": (original - current) / original * 100 if original else 0.0,
        }

    # ── Categories ────────────────────────────────────────────────────

    def category_by_name(self, name: str) -> dict[str, Any] | None:
        for category in self.categories.items():
            if str(category.get("name", "")).lower() == name.lower():
                return category
        return None

    def active_categories(self) -> Items:
        return [c for c in self.categories.items() if c.get("description") != "inactive"]

    # ── Assignments ───────────────────────────────────────────────────

    def active_assignments(self) -> Items:
        return [a for a in self.assignments.items() if not a.get("return_date")]

    def assignments_by_employee(self, employee_id: str) -> Items:
        return [a for a in self.assignments.items() if a.get("employee_id") == employee_id]

    def assignments_by_asset(self, asset_id: str) -> Items:
        return [a for a in self.assignments.items() if a.get("asset_id") == asset_id]

    async def assign(self, asset_id: str, employee_id: str, **details: Any) -> dict[str, Any]:
        """Mark an asset as assigned and record the assignment.

        Both assets and assignments are invalidated: the backend creates the
        assignment record as a side effect of the status change.
        """
        updated = await self.assets.ops.update(asset_id, {"status": "assigned", "employee_id": employee_id, **details})
        self.assets.invalidate()
        self.assignments.invalidate()
        self.logger.info("Assigned asset %s to %s", asset_id, employee_id)
        return updated

    async def unassign(self, asset_id: str, **details: Any) -> dict[str, Any]:
        updated = await self.assets.ops.update(asset_id, {"status": "in_stock", **details})
        self.assets.invalidate()
        self.assignments.invalidate()
        self.logger.info("Unassigned asset %s", asset_id)
        return updated
