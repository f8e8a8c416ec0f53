"""CRM facade: activities, opportunities, leads, contacts, accounts, stages, pipelines."""

from datetime import date, timedelta
from typing import Any

from flo.core.constants import DOMAIN_CRM, TTL_LONG, TTL_SHORT
from flo.domains.base import DomainFacade, Items, numeric, parse_date


def _is_pending(activity: dict[str, Any]) -> bool:
    return not activity.get("status") or activity.get("status") == "pending"


class CrmFacade(DomainFacade):
    """Sales pipeline data. The CRM backend updates with PATCH."""

    def __init__(self, client, ops=None):
        super().__init__(DOMAIN_CRM, client, ops)
        self.activities = self.add_collection("activities", "/crm/activities", TTL_SHORT, "PATCH")
        self.opportunities = self.add_collection("opportunities", "/crm/opportunities", TTL_SHORT, "PATCH")
        self.leads = self.add_collection("leads", "/crm/leads", TTL_SHORT, "PATCH")
        self.contacts = self.add_collection("contacts", "/crm/contacts", TTL_SHORT, "PATCH")
        self.accounts = self.add_collection("accounts", "/crm/accounts", TTL_SHORT, "PATCH")
        self.stages = self.add_collection("stages", "/crm/stages", TTL_LONG, "PATCH")
        self.pipelines = self.add_collection("pipelines", "/crm/pipelines", TTL_LONG, "PATCH")

    # ── Activities ────────────────────────────────────────────────────

    def pending_activities(self) -> Items:
        return [a for a in self.activities.items() if _is_pending(a)]

    def activities_by_status(self, status: str) -> Items:
        return [a for a in self.activities.items() if a.get("status") == status]

    def activities_by_priority(self, priority: str) -> Items:
        return [a for a in self.activities.items() if a.get("priority") == priority]

    def overdue_activities(self, today: date | None = None) -> Items:
        """Activities due before today that are not completed."""
        today = today or date.today()
        result = []
        for activity in self.activities.items():
            due = parse_date(activity.get("due_date"))
            if due and due < today and activity.get("status") != "completed":
                result.append(activity)
        return result

    def todays_activities(self, today: date | None = None) -> Items:
        today = today or date.today()
        return [a for a in self.activities.items() if parse_date(a.get("due_date")) == today]

    def upcoming_activities(self, days: int = 7, today: date | None = None) -> Items:
        today = today or date.today()
        horizon = today + timedelta(days=days)
        result = []
        for activity in self.activities.items():
            due = parse_date(activity.get("due_date"))
            if due and today <= due <= horizon:
                result.append(activity)
        return result

    def activity_completion_rate(self) -> int:
        """Percentage of completed activities, rounded to a whole number."""
        activities = self.activities.items()
        if not activities:
            return 0
        completed = sum(1 for a in activities if a.get("status") == "completed")
        return round(completed / len(activities) * 100)

    async def set_activity_status(self, activity_id: str, status: str) -> dict[str, Any]:
        resource = self.resources["activities"]
        return await self.activities.apply(
            activity_id, lambda: resource.action(activity_id, "status", {"status": status}, method="PATCH")
        )

    # ── Opportunities ─────────────────────────────────────────────────

    def opportunities_by_account(self, account_id: str) -> Items:
        return [o for o in self.opportunities.items() if o.get("account_id") == account_id]

    def opportunities_by_contact(self, contact_id: str) -> Items:
        return [o for o in self.opportunities.items() if o.get("contact_id") == contact_id]

    def opportunities_by_stage(self, stage_id: str) -> Items:
        return [o for o in self.opportunities.items() if o.get("stage_id") == stage_id]

    def total_opportunity_value(self) -> float:
        return sum(numeric(o) for o in self.opportunities.items())

    # ── Stages & pipelines ────────────────────────────────────────────

    def active_stages(self) -> Items:
        return [s for s in self.stages.items() if s.get("is_active")]

    def stage_by_name(self, name: str) -> dict[str, Any] | None:
        return next((s for s in self.stages.items() if s.get("name") == name), None)

    def pipeline_by_name(self, name: str) -> dict[str, Any] | None:
        return next((p for p in self.pipelines.items() if p.get("name") == name), None)
