"""Finance facade: budgets, transactions, invoices, expenses and categories."""

from datetime import date
from typing import Any

from flo.core.constants import DOMAIN_FINANCE, TTL_LONG, TTL_SHORT
from flo.domains.base import DomainFacade, Items, as_date, numeric, parse_date


def _in_range(items: Items, field: str, start: Any, end: Any) -> Items:
    """Items whose date ``field`` lies within [start, end]; accepts dates or ISO strings, None for an open bound."""
    start = as_date(start) if start is not None else None
    end = as_date(end) if end is not None else None
    result = []
    for item in items:
        value = parse_date(item.get(field))
        if value is None:
            continue
        if start and value < start:
            continue
        if end and value > end:
            continue
        result.append(item)
    return result


def _total(items: Items) -> float:
    return sum(numeric(i) for i in items)


class FinanceFacade(DomainFacade):
    """Budgets and cash movements.

    Budgets and categories change rarely and use the long TTL; invoices and
    expenses update with PATCH and expose status/approval actions.
    """

    def __init__(self, client, ops=None):
        super().__init__(DOMAIN_FINANCE, client, ops)
        self.budgets = self.add_collection("budgets", "/finance/budgets", TTL_LONG)
        self.categories = self.add_collection("categories", "/finance/categories", TTL_LONG)
        self.transactions = self.add_collection("transactions", "/finance/transactions", TTL_SHORT)
        self.invoices = self.add_collection("invoices", "/finance/invoices", TTL_SHORT, "PATCH")
        self.expenses = self.add_collection("expenses", "/finance/expenses", TTL_SHORT, "PATCH")

    # ── Budgets ───────────────────────────────────────────────────────

    def budgets_by_status(self, status: str) -> Items:
        return [b for b in self.budgets.items() if b.get("status") == status]

    def budgets_by_department(self, department_id: str) -> Items:
        return [
            b for b in self.budgets.items() if b.get("scope_type") == "department" and b.get("scope_ref") == department_id
        ]

    def budgets_for_period(self, day: date | str) -> Items:
        """Budgets whose period contains ``day``."""
        day = as_date(day)
        result = []
        for budget in self.budgets.items():
            start = parse_date(budget.get("period_start"))
            end = parse_date(budget.get("period_end"))
            if start and end and start <= day <= end:
                result.append(budget)
        return result

    def total_budget_amount(self) -> float:
        return sum(numeric(b, "total_amount") for b in self.budgets.items())

    def budget_utilization(self) -> dict[str, float]:
        """Allocated share of the total budget.

        Returns:
            Dict with total_budget, total_spent and utilization (percent)
        """
        total_budget = self.total_budget_amount()
        total_spent = sum(
            numeric(allocation, "amount_allocated")
            for budget in self.budgets.items()
            for allocation in budget.get("allocations") or []
        )
        return {
            "total_budget": total_budget,
            "total_spent": total_spent,
            "utilization": total_spent / total_budget * 100 if total_budget else 0.0,
        }

    async def close_budget(self, budget_id: str) -> dict[str, Any]:
        resource = self.resources["budgets"]
        return await self.budgets.apply(budget_id, lambda: resource.action(budget_id, "close"))

    async def archive_budget(self, budget_id: str) -> dict[str, Any]:
        resource = self.resources["budgets"]
        return await self.budgets.apply(budget_id, lambda: resource.action(budget_id, "archive"))

    # ── Transactions ──────────────────────────────────────────────────

    def transactions_by_type(self, kind: str) -> Items:
        return [t for t in self.transactions.items() if t.get("type") == kind]

    def transactions_by_date_range(self, start: date | str | None, end: date | str | None) -> Items:
        return _in_range(self.transactions.items(), "transaction_date", start, end)

    def transactions_by_amount_range(self, min_amount: float, max_amount: float) -> Items:
        return [t for t in self.transactions.items() if min_amount <= numeric(t) <= max_amount]

    def total_transaction_amount(self, kind: str | None = None) -> float:
        return _total(self.transactions_by_type(kind) if kind else self.transactions.items())

    def cash_flow(self, start: date | str | None = None, end: date | str | None = None) -> dict[str, float]:
        transactions = self.transactions.items()
        if start or end:
            transactions = _in_range(transactions, "transaction_date", start, end)
        income = _total([t for t in transactions if t.get("type") == "income"])
        expenses = _total([t for t in transactions if t.get("type") == "expense"])
        return {"income": income, "expenses": expenses, "net_flow": income - expenses}

    # ── Invoices ──────────────────────────────────────────────────────

    def invoices_by_status(self, status: str) -> Items:
        return [i for i in self.invoices.items() if i.get("status") == status]

    def invoices_by_client(self, client_name: str) -> Items:
        return [i for i in self.invoices.items() if i.get("client_name") == client_name]

    def invoices_by_date_range(self, start: date | str | None, end: date | str | None) -> Items:
        return _in_range(self.invoices.items(), "issue_date", start, end)

    def overdue_invoices(self, today: date | None = None) -> Items:
        """Unpaid invoices whose due date has passed."""
        today = today or date.today()
        result = []
        for invoice in self.invoices.items():
            due = parse_date(invoice.get("due_date"))
            if invoice.get("status") != "paid" and due and due < today:
                result.append(invoice)
        return result

    def total_invoice_amount(self, status: str | None = None) -> float:
        return _total(self.invoices_by_status(status) if status else self.invoices.items())

    def outstanding_amount(self, today: date | None = None) -> float:
        """Sum of sent and overdue invoices, each counted once."""
        outstanding = {i.get("id"): i for i in self.invoices_by_status("sent")}
        outstanding.update({i.get("id"): i for i in self.overdue_invoices(today)})
        return _total(list(outstanding.values()))

    async def set_invoice_status(self, invoice_id: str, status: str) -> dict[str, Any]:
        resource = self.resources["invoices"]
        return await self.invoices.apply(
            invoice_id, lambda: resource.action(invoice_id, "status", {"status": status}, method="PATCH")
        )

    async def send_invoice(self, invoice_id: str) -> dict[str, Any]:
        resource = self.resources["invoices"]
        return await self.invoices.apply(invoice_id, lambda: resource.action(invoice_id, "send"))

    # ── Expenses ──────────────────────────────────────────────────────

    def expenses_by_status(self, status: str) -> Items:
        return [e for e in self.expenses.items() if e.get("status") == status]

    def expenses_by_category(self, category: str) -> Items:
        return [e for e in self.expenses.items() if e.get("category") == category]

    def expenses_by_employee(self, employee_id: str) -> Items:
        return [e for e in self.expenses.items() if e.get("submitted_by") == employee_id]

    def expenses_by_date_range(self, start: date | str | None, end: date | str | None) -> Items:
        return _in_range(self.expenses.items(), "submitted_date", start, end)

    def expenses_by_amount_range(self, min_amount: float, max_amount: float) -> Items:
        return [e for e in self.expenses.items() if min_amount <= numeric(e) <= max_amount]

    def total_expense_amount(self, status: str | None = None) -> float:
        return _total(self.expenses_by_status(status) if status else self.expenses.items())

    async def approve_expense(self, expense_id: str) -> dict[str, Any]:
        resource = self.resources["expenses"]
        return await self.expenses.apply(expense_id, lambda: resource.action(expense_id, "approve"))

    async def reject_expense(self, expense_id: str) -> dict[str, Any]:
        resource = self.resources["expenses"]
        return await self.expenses.apply(expense_id, lambda: resource.action(expense_id, "reject"))

    # ── Summary ───────────────────────────────────────────────────────

    def financial_summary(self) -> dict[str, float]:
        utilization = self.budget_utilization()
        flow = self.cash_flow()
        return {
            "total_budget": utilization["total_budget"],
            "total_spent": utilization["total_spent"],
            "total_income": flow["income"],
            "total_expenses": flow["expenses"],
            "net_income": flow["net_flow"],
            "budget_utilization": utilization["utilization"],
        }
