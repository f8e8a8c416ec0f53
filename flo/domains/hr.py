"""HR facade: employees, leave requests and onboardings."""

from datetime import date
from typing import Any

from flo.core.constants import DOMAIN_HR, TTL_LONG, TTL_SHORT
from flo.domains.base import DomainFacade, Items, as_date, contains, parse_date

EMPLOYEE_STATUSES = ("active", "inactive", "terminated")


def _full_name(employee: dict[str, Any]) -> str:
    return f"{employee.get('first_name') or ''} {employee.get('last_name') or ''}".strip()


def remaining_tasks(onboarding: dict[str, Any]) -> Items:
    return [task for task in onboarding.get("checklist") or [] if not task.get("completed")]


def completed_tasks(onboarding: dict[str, Any]) -> Items:
    return [task for task in onboarding.get("checklist") or [] if task.get("completed")]


def onboarding_completion(onboarding: dict[str, Any]) -> int:
    """Completed share of the checklist as a whole percentage; an empty checklist is 100."""
    checklist = onboarding.get("checklist") or []
    if not checklist:
        return 100
    return round(len(completed_tasks(onboarding)) / len(checklist) * 100)


class HrFacade(DomainFacade):
    """People records. Employee data is slow-moving and cached on the long tier."""

    def __init__(self, client, ops=None):
        super().__init__(DOMAIN_HR, client, ops)
        self.employees = self.add_collection("employees", "/hr/employees", TTL_LONG)
        self.leave_requests = self.add_collection("leave_requests", "/hr/leave-requests", TTL_SHORT)
        self.onboardings = self.add_collection("onboardings", "/hr/onboarding", TTL_SHORT)

    # ── Employees ─────────────────────────────────────────────────────

    def employee_count(self) -> dict[str, int]:
        counts = {status: len(self.employees_by_status(status)) for status in EMPLOYEE_STATUSES}
        counts["total"] = len(self.employees.items())
        return counts

    def employees_by_status(self, status: str) -> Items:
        return [e for e in self.employees.items() if e.get("status") == status]

    def employees_by_name(self, pattern: str) -> Items:
        """Match against first name, last name or the full name."""
        return [
            e
            for e in self.employees.items()
            if contains(e.get("first_name"), pattern) or contains(e.get("last_name"), pattern)
            or contains(_full_name(e), pattern)
        ]

    def employees_by_department(self, department_id: str) -> Items:
        return [e for e in self.employees.items() if e.get("department_id") == department_id]

    # ── Leave requests ────────────────────────────────────────────────

    def leave_by_status(self, status: str) -> Items:
        return [r for r in self.leave_requests.items() if r.get("status") == status]

    def leave_by_employee(self, employee_id: str) -> Items:
        return [r for r in self.leave_requests.items() if r.get("employee_id") == employee_id]

    def leave_by_type(self, leave_type: str) -> Items:
        return [r for r in self.leave_requests.items() if r.get("leave_type") == leave_type]

    def leave_by_date_range(self, start: date | str, end: date | str) -> Items:
        """Requests that start or end inside [start, end].

        Raises:
            ValueError: A bound is not a valid date
        """
        start = as_date(start)
        end = as_date(end)
        result = []
        for request in self.leave_requests.items():
            req_start = parse_date(request.get("start_date"))
            req_end = parse_date(request.get("end_date"))
            if (req_start and start <= req_start <= end) or (req_end and start <= req_end <= end):
                result.append(request)
        return result

    async def _leave_action(self, request_id: str, action: str) -> dict[str, Any]:
        resource = self.resources["leave_requests"]
        result = await self.leave_requests.apply(request_id, lambda: resource.action(request_id, action, method="PUT"))
        self.logger.info("Leave request %s: %s", request_id, action)
        return result

    async def approve_leave(self, request_id: str) -> dict[str, Any]:
        return await self._leave_action(request_id, "approve")

    async def reject_leave(self, request_id: str) -> dict[str, Any]:
        return await self._leave_action(request_id, "reject")

    async def cancel_leave(self, request_id: str) -> dict[str, Any]:
        return await self._leave_action(request_id, "cancel")

    # ── Onboardings ───────────────────────────────────────────────────

    def onboardings_by_status(self, status: str) -> Items:
        return [o for o in self.onboardings.items() if o.get("status") == status]

    def onboardings_by_employee(self, employee_id: str) -> Items:
        return [o for o in self.onboardings.items() if o.get("employee_id") == employee_id]

    async def complete_onboarding(self, onboarding_id: str) -> dict[str, Any]:
        resource = self.resources["onboardings"]
        return await self.onboardings.apply(
            onboarding_id, lambda: resource.action(onboarding_id, "complete", method="PUT")
        )
