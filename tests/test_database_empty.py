from finance_ledger.aggregation import balance, category_breakdown, daily_breakdown, totals
from finance_ledger.database import LedgerStore


def test_empty_db_queries(tmp_path):
    store = LedgerStore(tmp_path / "empty.db")

    assert store.list() == []
    assert store.get(1) is None
    assert store.delete(1) is False

    summary = totals(store)
    assert summary.total_income == 0
    assert summary.total_expense == 0
    assert summary.to_dict() == {"total_income": 0.0, "total_expense": 0.0}
    assert balance(store) == 0
    assert category_breakdown(store) == {}
    assert category_breakdown(store, "income") == {}
    assert daily_breakdown(store) == {}
