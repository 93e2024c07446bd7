from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from finance_ledger.core.errors import ValidationError
from finance_ledger.core.models import EXPENSE, INCOME, TRANSACTION_TYPES, Transaction
from finance_ledger.core.validation import ValidationReason
from finance_ledger.database import LedgerStore

ZERO = Decimal("0")


@dataclass(frozen=True)
class Totals:
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense

    def to_dict(self) -> Dict[str, float]:
        return {
            "total_income": float(self.total_income),
            "total_expense": float(self.total_expense),
        }


@dataclass
class DayGroup:
    date: str
    records: List[Transaction] = field(default_factory=list)
    expense_total: Decimal = ZERO

    def to_dict(self) -> Dict[str, object]:
        return {
            "date": self.date,
            "expense_total": float(self.expense_total),
            "records": [tx.to_dict() for tx in self.records],
        }


def totals_of(records: Iterable[Transaction]) -> Totals:
    income = ZERO
    expense = ZERO
    for tx in records:
        if tx.type == INCOME:
            income += tx.amount
        elif tx.type == EXPENSE:
            expense += tx.amount
    return Totals(total_income=income, total_expense=expense)


def totals(store: LedgerStore) -> Totals:
    """Sum income and expense amounts over the current ledger."""
    return totals_of(store.list())


def balance(store: LedgerStore) -> Decimal:
    return totals(store).balance


def _check_type(type: str) -> None:
    if type not in TRANSACTION_TYPES:
        raise ValidationError(
            ValidationReason.INVALID_TYPE,
            f"type must be 'income' or 'expense', got {type!r}",
        )


def category_breakdown_of(records: Iterable[Transaction], type: str = EXPENSE) -> Dict[str, Decimal]:
    _check_type(type)
    sums: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in records:
        if tx.type == type:
            sums[tx.category] += tx.amount
    return dict(sums)


def category_breakdown(store: LedgerStore, type: str = EXPENSE) -> Dict[str, Decimal]:
    """Aggregate amounts of one transaction type grouped by category.

    Categories are matched exactly. Categories without records of *type* do
    not appear in the result.
    """
    _check_type(type)
    return category_breakdown_of(store.list(), type)


def daily_breakdown(store: LedgerStore) -> Dict[str, DayGroup]:
    """Group records by event date, newest date first.

    Each group keeps its records in ledger order and the sum of its expense
    amounts; income does not count towards the day total.
    """

    groups: Dict[str, DayGroup] = {}
    for tx in store.list():
        group = groups.get(tx.date)
        if group is None:
            group = groups[tx.date] = DayGroup(date=tx.date)
        group.records.append(tx)
        if tx.type == EXPENSE:
            group.expense_total += tx.amount
    return {day: groups[day] for day in sorted(groups, reverse=True)}


def sorted_breakdown(breakdown: Dict[str, Decimal]) -> List[Tuple[str, Decimal]]:
    """Return breakdown entries by amount descending, then by name."""
    return sorted(breakdown.items(), key=lambda item: (-item[1], item[0]))
