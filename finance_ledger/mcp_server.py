from __future__ import annotations

import anyio
from mcp.server.fastmcp import FastMCP

from pathlib import Path

from finance_ledger.aggregation import category_breakdown, daily_breakdown, totals
from finance_ledger.config import configure_logging, load_config, store_from_config
from finance_ledger.core.errors import ValidationError
from finance_ledger.core.models import EXPENSE
from finance_ledger.database import LedgerStore

server = FastMCP(name="Ledgerly", instructions="Record and summarize personal income and expenses")


def _open_store(db_path: str) -> LedgerStore:
    return store_from_config(load_config(), db_path)


def _existing_store(db_path: str) -> LedgerStore:
    if not Path(db_path).exists():
        raise FileNotFoundError(f"Database not found: {db_path}")
    return _open_store(db_path)


@server.tool(name="add_transaction", description="Record an income or expense")
async def add_transaction(
    db_path: str,
    amount: float,
    category: str,
    date: str,
    type: str = EXPENSE,
    description: str = "",
) -> dict:
    """Append a record to the ledger at ``db_path`` and return its id.

    Invalid input is reported as ``ValueError`` so MCP clients see the reason.
    """

    store = _open_store(db_path)

    def _run() -> dict:
        try:
            new_id = store.append(amount, type, category, description, date)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc
        return {"id": new_id}

    return await anyio.to_thread.run_sync(_run)


@server.tool(name="list_transactions", description="List records, newest first")
async def list_transactions(db_path: str, limit: int | None = None) -> list[dict]:
    store = _existing_store(db_path)

    def _run() -> list[dict]:
        txs = store.list()
        if limit is not None and limit >= 0:
            txs = txs[:limit]
        return [tx.to_dict() for tx in txs]

    return await anyio.to_thread.run_sync(_run)


@server.tool(name="delete_transaction", description="Delete a record by id")
async def delete_transaction(db_path: str, transaction_id: int) -> dict:
    store = _existing_store(db_path)

    def _run() -> dict:
        return {"success": True, "removed": store.delete(transaction_id)}

    return await anyio.to_thread.run_sync(_run)


@server.tool(name="get_stats", description="Total income, total expense and balance")
async def get_stats(db_path: str) -> dict:
    store = _existing_store(db_path)

    def _run() -> dict:
        summary = totals(store)
        payload = summary.to_dict()
        payload["balance"] = float(summary.balance)
        return payload

    return await anyio.to_thread.run_sync(_run)


@server.tool(name="get_category_breakdown", description="Amounts per category for one type")
async def get_category_breakdown(db_path: str, type: str = EXPENSE) -> dict:
    store = _existing_store(db_path)

    def _run() -> dict:
        try:
            breakdown = category_breakdown(store, type)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc
        return {name: float(amount) for name, amount in breakdown.items()}

    return await anyio.to_thread.run_sync(_run)


@server.tool(name="get_daily_breakdown", description="Records grouped by date with daily expense")
async def get_daily_breakdown(db_path: str) -> list[dict]:
    store = _existing_store(db_path)

    def _run() -> list[dict]:
        return [group.to_dict() for group in daily_breakdown(store).values()]

    return await anyio.to_thread.run_sync(_run)


def main() -> None:
    configure_logging(load_config())
    server.run()


if __name__ == "__main__":
    main()
