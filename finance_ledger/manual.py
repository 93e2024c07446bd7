# finance_ledger/manual.py
from typing import Dict, Iterable, List

import yaml

from finance_ledger.core.errors import ValidationError
from finance_ledger.core.models import EXPENSE
from finance_ledger.database import LedgerStore


def load_manual_transactions(path) -> List[Dict[str, object]]:
    """Load transaction entries from a YAML list of mappings."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of transactions in {path}")

    entries = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError(f"Manual entry must be a mapping: {entry!r}")
        if not entry.get('date'):
            raise ValueError(f"Missing 'date' in manual entry: {entry}")
        entries.append(
            {
                'amount': entry.get('amount'),
                'type': entry.get('type', EXPENSE),
                'category': entry.get('category'),
                'description': entry.get('description', ''),
                'date': entry.get('date'),
            }
        )
    return entries


def import_transactions(store: LedgerStore, entries: Iterable[Dict[str, object]]) -> List[int]:
    """Append entries one by one and return their ids.

    There is no rollback: when an entry is rejected, the entries before it
    stay stored and the raised ValidationError names the failing position.
    """
    ids: List[int] = []
    for index, entry in enumerate(entries, start=1):
        try:
            ids.append(store.append(**entry))
        except ValidationError as exc:
            raise ValidationError(
                exc.reason, f"entry {index}: {exc} ({len(ids)} earlier entries kept)"
            ) from exc
    return ids
