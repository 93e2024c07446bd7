# finance_ledger/core/validation.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Mapping, Sequence

from finance_ledger.core.errors import ValidationError
from finance_ledger.core.models import TRANSACTION_TYPES, NewTransaction

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ValidationReason(str, Enum):
    MISSING_AMOUNT = "missing_amount"
    INVALID_AMOUNT = "invalid_amount"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    MISSING_TYPE = "missing_type"
    INVALID_TYPE = "invalid_type"
    MISSING_CATEGORY = "missing_category"
    UNKNOWN_CATEGORY = "unknown_category"
    MISSING_DATE = "missing_date"
    INVALID_DATE = "invalid_date"


@dataclass(frozen=True)
class ValidationResult:
    """Either a validated transaction or the reason it was rejected."""

    ok: bool
    value: NewTransaction | None = None
    reason: ValidationReason | None = None
    message: str = ""

    @classmethod
    def success(cls, value: NewTransaction) -> "ValidationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: ValidationReason, message: str) -> "ValidationResult":
        return cls(ok=False, reason=reason, message=message)

    def unwrap(self) -> NewTransaction:
        if not self.ok:
            raise ValidationError(self.reason, self.message)
        return self.value


def parse_amount(value) -> Decimal | ValidationResult:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ValidationResult.failure(
            ValidationReason.MISSING_AMOUNT, "amount is required"
        )
    if isinstance(value, bool):
        return ValidationResult.failure(
            ValidationReason.INVALID_AMOUNT, f"amount must be a number, got {value!r}"
        )
    try:
        # Floats go through str() so 0.1 becomes Decimal("0.1").
        amount = Decimal(str(value).strip() if isinstance(value, (str, float)) else value)
    except (InvalidOperation, TypeError, ValueError):
        return ValidationResult.failure(
            ValidationReason.INVALID_AMOUNT, f"amount must be a number, got {value!r}"
        )
    if not amount.is_finite():
        return ValidationResult.failure(
            ValidationReason.INVALID_AMOUNT, f"amount must be finite, got {value!r}"
        )
    if amount <= 0:
        return ValidationResult.failure(
            ValidationReason.NON_POSITIVE_AMOUNT, f"amount must be positive, got {value!r}"
        )
    return amount


def parse_date(value) -> str | ValidationResult:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ValidationResult.failure(ValidationReason.MISSING_DATE, "date is required")
    if isinstance(value, date):
        return value.isoformat()[:10]
    text = str(value).strip()
    if not _ISO_DATE.match(text):
        return ValidationResult.failure(
            ValidationReason.INVALID_DATE, f"date must be YYYY-MM-DD, got {value!r}"
        )
    try:
        date.fromisoformat(text)
    except ValueError:
        return ValidationResult.failure(
            ValidationReason.INVALID_DATE, f"{text} is not a calendar date"
        )
    return text


def validate_transaction(
    amount,
    type,
    category,
    description=None,
    date=None,
    *,
    vocabulary: Mapping[str, Sequence[str]] | None = None,
) -> ValidationResult:
    """Check a candidate record before it is written.

    Fields are checked in the order amount, type, category, date and the
    first failure is returned. When *vocabulary* is given the category must
    belong to the list registered for the transaction type.
    """

    parsed_amount = parse_amount(amount)
    if isinstance(parsed_amount, ValidationResult):
        return parsed_amount

    if type is None or (isinstance(type, str) and not type.strip()):
        return ValidationResult.failure(ValidationReason.MISSING_TYPE, "type is required")
    tx_type = str(type).strip()
    if tx_type not in TRANSACTION_TYPES:
        return ValidationResult.failure(
            ValidationReason.INVALID_TYPE,
            f"type must be 'income' or 'expense', got {type!r}",
        )

    clean_category = str(category).strip() if category is not None else ""
    if not clean_category:
        return ValidationResult.failure(
            ValidationReason.MISSING_CATEGORY, "category is required"
        )
    if vocabulary is not None and clean_category not in vocabulary.get(tx_type, ()):
        return ValidationResult.failure(
            ValidationReason.UNKNOWN_CATEGORY,
            f"category {clean_category!r} is not allowed for {tx_type}",
        )

    parsed_date = parse_date(date)
    if isinstance(parsed_date, ValidationResult):
        return parsed_date

    return ValidationResult.success(
        NewTransaction(
            amount=parsed_amount,
            type=tx_type,
            category=clean_category,
            description=str(description).strip() if description else "",
            date=parsed_date,
        )
    )
