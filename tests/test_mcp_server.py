import anyio
import pytest
import yaml

from finance_ledger import config as config_module
from finance_ledger.database import LedgerStore
from finance_ledger.mcp_server import (
    add_transaction,
    delete_transaction,
    get_category_breakdown,
    get_daily_breakdown,
    get_stats,
    list_transactions,
)


def _setup_db(tmp_path):
    db_path = tmp_path / "ledger.db"
    store = LedgerStore(db_path)
    store.append(10, "expense", "餐饮", "Breakfast", "2025-01-10")
    store.append(20, "expense", "交通", "Taxi", "2025-01-10")
    store.append(3000, "income", "工资", "", "2025-01-15")
    store.append(5, "expense", "餐饮", "Snack", "2025-01-15")
    return db_path


def test_add_and_list(tmp_path):
    db_path = tmp_path / "ledger.db"

    async def run():
        created = await add_transaction(str(db_path), 42.5, "购物", "2025-02-01", description="Shoes")
        rows = await list_transactions(str(db_path))
        return created, rows

    created, rows = anyio.run(run)
    assert created == {"id": 1}
    assert len(rows) == 1
    assert rows[0]["amount"] == 42.5
    assert rows[0]["type"] == "expense"
    assert rows[0]["description"] == "Shoes"


def test_add_invalid_input(tmp_path):
    db_path = tmp_path / "ledger.db"

    with pytest.raises(ValueError, match="amount must be positive"):
        anyio.run(add_transaction, str(db_path), -1, "餐饮", "2025-01-01")

    with pytest.raises(ValueError, match="YYYY-MM-DD"):
        anyio.run(add_transaction, str(db_path), 1, "餐饮", "01/02/2025")


def test_list_with_limit(tmp_path):
    db_path = _setup_db(tmp_path)
    rows = anyio.run(list_transactions, str(db_path), 2)
    assert [r["date"] for r in rows] == ["2025-01-15", "2025-01-15"]
    assert rows[0]["description"] == "Snack"


def test_read_tools_require_existing_db(tmp_path):
    with pytest.raises(FileNotFoundError, match="Database not found"):
        anyio.run(get_stats, str(tmp_path / "missing.db"))


def test_get_stats(tmp_path):
    db_path = _setup_db(tmp_path)
    stats = anyio.run(get_stats, str(db_path))
    assert stats == {"total_income": 3000.0, "total_expense": 35.0, "balance": 2965.0}


def test_delete_transaction(tmp_path):
    db_path = _setup_db(tmp_path)

    first = anyio.run(delete_transaction, str(db_path), 3)
    second = anyio.run(delete_transaction, str(db_path), 3)
    assert first == {"success": True, "removed": True}
    assert second == {"success": True, "removed": False}

    stats = anyio.run(get_stats, str(db_path))
    assert stats["total_income"] == 0.0


def test_breakdowns(tmp_path):
    db_path = _setup_db(tmp_path)

    expense = anyio.run(get_category_breakdown, str(db_path))
    assert expense == {"餐饮": 15.0, "交通": 20.0}

    income = anyio.run(get_category_breakdown, str(db_path), "income")
    assert income == {"工资": 3000.0}

    with pytest.raises(ValueError):
        anyio.run(get_category_breakdown, str(db_path), "refund")

    days = anyio.run(get_daily_breakdown, str(db_path))
    assert [d["date"] for d in days] == ["2025-01-15", "2025-01-10"]
    assert days[0]["expense_total"] == 5.0
    assert days[1]["expense_total"] == 30.0


def test_tools_honour_enforced_categories(tmp_path, monkeypatch):
    cfg_path = tmp_path / "ledgerly.yaml"
    cfg_path.write_text(yaml.safe_dump({"enforce_categories": True}), encoding="utf-8")
    monkeypatch.setattr(config_module, "CONFIG_PATH", cfg_path)
    db_path = str(tmp_path / "ledger.db")

    async def run():
        created = await add_transaction(db_path, 12, "餐饮", "2025-03-01")
        with pytest.raises(ValueError, match="not allowed"):
            await add_transaction(db_path, 12, "coffee", "2025-03-01")
        return created, await list_transactions(db_path)

    created, rows = anyio.run(run)
    assert created == {"id": 1}
    assert [row["category"] for row in rows] == ["餐饮"]
