# finance_ledger/core/models.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

TransactionType = Literal["income", "expense"]

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)


@dataclass(frozen=True)
class NewTransaction:
    """A validated transaction that has not been stored yet."""

    amount: Decimal
    type: str
    category: str
    description: str
    date: str


@dataclass(frozen=True)
class Transaction:
    id: int
    amount: Decimal
    type: str
    category: str
    description: str
    date: str
    created_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": float(self.amount),
            "type": self.type,
            "category": self.category,
            "description": self.description,
            "date": self.date,
            "created_at": self.created_at,
        }
