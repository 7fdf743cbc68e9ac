"""Spend-vs-budget figures, recomputed from the ledger on every call.

Nothing here is cached or stored: the same transactions always produce the
same totals.
"""
import calendar
import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session, SQLModel, select

from ..core.clock import as_naive_utc, utcnow
from ..models.budget import Budget, Frequency
from ..models.category import Category
from ..models.transaction import Transaction
from .ledger import CENT


UNCATEGORIZED = "Uncategorized"
WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_LABELS = [calendar.month_abbr[i] for i in range(1, 13)]


class BudgetStatus(SQLModel):
    budget_id: uuid.UUID
    frequency: Frequency
    period_start: datetime
    amount: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: Decimal
    over_budget: bool


class CategorySpend(SQLModel):
    category: str
    total: Decimal


class SeriesPoint(SQLModel):
    name: str
    spent: Decimal


def period_start(frequency: Frequency, now: datetime) -> datetime:
    """Start of the current week (Monday), month or year containing ``now``."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    frequency = Frequency(frequency)
    if frequency == Frequency.weekly:
        return midnight - timedelta(days=midnight.weekday())
    if frequency == Frequency.monthly:
        return midnight.replace(day=1)
    return midnight.replace(month=1, day=1)


def period_spend(transactions: Iterable[Transaction], start: datetime) -> Decimal:
    total = sum((tx.amount for tx in transactions if tx.date >= start), Decimal("0"))
    return total.quantize(CENT)


def budget_status(budget: Budget, transactions: Iterable[Transaction], now: datetime) -> BudgetStatus:
    start = period_start(budget.frequency, now)
    amount = Decimal(budget.amount).quantize(CENT)
    spent = period_spend(transactions, start)
    percent = (spent / amount * 100).quantize(CENT) if amount > 0 else Decimal("0.00")
    return BudgetStatus(
        budget_id=budget.id,
        frequency=budget.frequency,
        period_start=start,
        amount=amount,
        spent=spent,
        remaining=(amount - spent).quantize(CENT),
        percent_used=percent,
        over_budget=spent > amount,
    )


def spending_by_category(
    transactions: Iterable[Transaction],
    category_names: Dict[uuid.UUID, str],
) -> List[CategorySpend]:
    totals: Dict[str, Decimal] = {}
    for tx in transactions:
        name = category_names.get(tx.category_id, UNCATEGORIZED) if tx.category_id else UNCATEGORIZED
        totals[name] = totals.get(name, Decimal("0")) + tx.amount
    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [CategorySpend(category=name, total=total.quantize(CENT)) for name, total in ordered]


def spending_series(transactions: Iterable[Transaction], frequency: Frequency, now: datetime) -> List[SeriesPoint]:
    """Per-day or per-month buckets of the current period, for the dashboard chart."""
    frequency = Frequency(frequency)
    start = period_start(frequency, now)

    if frequency == Frequency.weekly:
        labels = WEEKDAY_LABELS
    elif frequency == Frequency.monthly:
        labels = [str(day) for day in range(1, calendar.monthrange(now.year, now.month)[1] + 1)]
    else:
        labels = MONTH_LABELS
    buckets = OrderedDict((label, Decimal("0")) for label in labels)

    for tx in transactions:
        if tx.date < start:
            continue
        if frequency == Frequency.weekly:
            index = (tx.date.date() - start.date()).days
        elif frequency == Frequency.monthly:
            index = tx.date.day - 1 if (tx.date.year, tx.date.month) == (now.year, now.month) else None
        else:
            index = tx.date.month - 1 if tx.date.year == now.year else None
        # Future-dated entries beyond the current period have no bucket
        if index is None or not 0 <= index < len(labels):
            continue
        buckets[labels[index]] += tx.amount

    return [SeriesPoint(name=label, spent=spent.quantize(CENT)) for label, spent in buckets.items()]


class SpendingSummary:
    def __init__(self, session: Session):
        self.session = session

    def _transactions(self, owner_id: uuid.UUID) -> List[Transaction]:
        return list(self.session.exec(select(Transaction).where(Transaction.user_id == owner_id)).all())

    def budget_statuses(self, owner_id: uuid.UUID, now: Optional[datetime] = None) -> List[BudgetStatus]:
        now = as_naive_utc(now) if now else utcnow()
        budgets = self.session.exec(
            select(Budget).where(Budget.user_id == owner_id).order_by(Budget.frequency)
        ).all()
        transactions = self._transactions(owner_id)
        return [budget_status(budget, transactions, now) for budget in budgets]

    def by_category(self, owner_id: uuid.UUID, since: Optional[datetime] = None) -> List[CategorySpend]:
        categories = self.session.exec(select(Category).where(Category.user_id == owner_id)).all()
        names = {c.id: c.name for c in categories}
        transactions = self._transactions(owner_id)
        if since is not None:
            since = as_naive_utc(since)
            transactions = [tx for tx in transactions if tx.date >= since]
        return spending_by_category(transactions, names)

    def series(self, owner_id: uuid.UUID, frequency: Frequency, now: Optional[datetime] = None) -> List[SeriesPoint]:
        now = as_naive_utc(now) if now else utcnow()
        return spending_series(self._transactions(owner_id), frequency, now)
