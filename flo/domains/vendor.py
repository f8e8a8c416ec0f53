"""Vendor facade: vendors and vendor categories."""

from typing import Any

from flo.core.constants import DOMAIN_VENDOR, TTL_LONG, TTL_SHORT
from flo.domains.base import DomainFacade, Items, contains, numeric

VENDOR_STATUSES = ("active", "inactive", "suspended")


class VendorFacade(DomainFacade):
    """Supplier records."""

    def __init__(self, client, ops=None):
        super().__init__(DOMAIN_VENDOR, client, ops)
        self.vendors = self.add_collection(
            "vendors", "/vendor/vendors", TTL_SHORT, "PATCH", create_path="/vendors/vendors"
        )
        self.categories = self.add_collection("categories", "/vendor/categories", TTL_LONG, "PATCH")

    def by_status(self, status: str) -> Items:
        return [v for v in self.vendors.items() if v.get("status") == status]

    def by_category(self, category_id: str) -> Items:
        return [v for v in self.vendors.items() if v.get("category_id") == category_id]

    def by_name(self, pattern: str) -> Items:
        return [v for v in self.vendors.items() if contains(v.get("name"), pattern)]

    def by_email(self, pattern: str) -> Items:
        return [v for v in self.vendors.items() if contains(v.get("email"), pattern)]

    def by_payment_terms(self, terms: str) -> Items:
        return [v for v in self.vendors.items() if v.get("payment_terms") == terms]

    def with_credit_limit(self, min_limit: float | None = None, max_limit: float | None = None) -> Items:
        """Vendors that have a credit limit inside the inclusive range; no limit never matches."""
        result = []
        for vendor in self.vendors.items():
            limit = numeric(vendor, "credit_limit")
            if not limit:
                continue
            if min_limit is not None and limit < min_limit:
                continue
            if max_limit is not None and limit > max_limit:
                continue
            result.append(vendor)
        return result

    def vendor_count(self) -> dict[str, int]:
        counts = {status: len(self.by_status(status)) for status in VENDOR_STATUSES}
        counts["total"] = len(self.vendors.items())
        return counts

    def summary(self) -> dict[str, Any]:
        vendors = self.vendors.items()
        counts = self.vendor_count()
        categorized = sum(1 for v in vendors if v.get("category_id"))
        return {
            "total_vendors": counts["total"],
            "active_vendors": counts["active"],
            "inactive_vendors": counts["inactive"],
            "suspended_vendors": counts["suspended"],
            "categorized_vendors": categorized,
            "uncategorized_vendors": counts["total"] - categorized,
            "total_credit_limit": sum(numeric(v, "credit_limit") for v in vendors),
        }

    # ── Categories ────────────────────────────────────────────────────

    def categories_by_name(self, pattern: str) -> Items:
        return [c for c in self.categories.items() if contains(c.get("name"), pattern)]

    def category_by_name(self, name: str) -> dict[str, Any] | None:
        for category in self.categories.items():
            if str(category.get("name", "")).lower() == name.lower():
                return category
        return None
