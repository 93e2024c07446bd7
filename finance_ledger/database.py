import logging
import sqlite3
import threading
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from finance_ledger.core.errors import StorageError
from finance_ledger.core.models import Transaction
from finance_ledger.core.validation import validate_transaction

logger = logging.getLogger(__name__)

_COLUMNS = "id, amount, type, category, description, date, created_at"


def _init_db(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            amount TEXT NOT NULL,
            type TEXT NOT NULL CHECK(type IN ('income', 'expense')),
            category TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            date TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )
    conn.commit()


def _row_to_transaction(row: tuple) -> Transaction:
    try:
        amount = Decimal(row[1])
        if not amount.is_finite():
            raise ValueError(f"non-finite amount {row[1]!r}")
        return Transaction(
            id=int(row[0]),
            amount=amount,
            type=row[2],
            category=row[3],
            description=row[4] or "",
            date=row[5],
            created_at=row[6],
        )
    except (InvalidOperation, TypeError, ValueError) as exc:
        logger.error("Corrupt transaction row %r: %s", row[0], exc)
        raise StorageError(f"Corrupt transaction row {row[0]!r}") from exc


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class LedgerStore:
    """SQLite-backed collection of transaction records.

    Records are only ever inserted or deleted. Mutations are serialized by a
    per-store lock so concurrent appends receive distinct, increasing ids;
    every operation uses its own connection and reads are single statements,
    so a reader sees a row either completely or not at all.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Parent directories are created on
        first use.
    vocabulary:
        Optional mapping of transaction type to allowed categories. When set,
        ``append`` rejects categories outside the list for the record's type.
    timeout:
        Seconds sqlite waits on a locked database before giving up.
    """

    def __init__(
        self,
        db_path,
        vocabulary: Optional[Mapping[str, Sequence[str]]] = None,
        timeout: float = 5.0,
    ) -> None:
        self.db_path = Path(db_path)
        self.vocabulary = vocabulary
        self.timeout = timeout
        self._write_lock = threading.Lock()
        self._initialized = False
        self._init_lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        try:
            if not self._initialized:
                with self._init_lock:
                    if not self._initialized:
                        self.db_path.parent.mkdir(parents=True, exist_ok=True)
                        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
                        try:
                            _init_db(conn)
                        finally:
                            conn.close()
                        self._initialized = True
            return sqlite3.connect(self.db_path, timeout=self.timeout)
        except (sqlite3.Error, OSError) as exc:
            logger.error("Could not open ledger database %s: %s", self.db_path, exc)
            raise StorageError(f"Could not open ledger database {self.db_path}") from exc

    def append(self, amount, type, category, description="", date=None) -> int:
        """Validate and persist a new record, returning its id.

        Raises ``ValidationError`` before touching the database when a field
        is missing or malformed, and ``StorageError`` when the insert could
        not be committed. Nothing is stored in either case.
        """
        record = validate_transaction(
            amount, type, category, description, date, vocabulary=self.vocabulary
        ).unwrap()

        with self._write_lock:
            conn = self._connect()
            try:
                with conn:
                    cur = conn.execute(
                        """
                        INSERT INTO transactions
                        (amount, type, category, description, date, created_at)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            str(record.amount),
                            record.type,
                            record.category,
                            record.description,
                            record.date,
                            _utc_timestamp(),
                        ),
                    )
                new_id = int(cur.lastrowid)
            except sqlite3.Error as exc:
                logger.error("Failed to add transaction: %s", exc)
                raise StorageError("Failed to add transaction") from exc
            finally:
                conn.close()

        logger.debug("Stored %s %s %s as id %d", record.type, record.amount, record.category, new_id)
        return new_id

    def list(self) -> List[Transaction]:
        """Return every record, newest event date first.

        Same-day records are ordered by ``created_at`` descending, then by id
        descending so the order is stable even for identical timestamps.
        """
        conn = self._connect()
        try:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM transactions
                ORDER BY date DESC, created_at DESC, id DESC
                """
            ).fetchall()
        except sqlite3.Error as exc:
            logger.error("Failed to fetch transactions: %s", exc)
            raise StorageError("Failed to fetch transactions") from exc
        finally:
            conn.close()
        return [_row_to_transaction(r) for r in rows]

    def get(self, transaction_id: int) -> Optional[Transaction]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM transactions WHERE id = ?",
                (int(transaction_id),),
            ).fetchone()
        except sqlite3.Error as exc:
            logger.error("Failed to fetch transaction %s: %s", transaction_id, exc)
            raise StorageError(f"Failed to fetch transaction {transaction_id}") from exc
        finally:
            conn.close()
        return _row_to_transaction(row) if row else None

    def delete(self, transaction_id: int) -> bool:
        """Remove the record with *transaction_id*.

        Returns True when a row was removed and False when no such id exists.
        An absent id is not an error.
        """
        with self._write_lock:
            conn = self._connect()
            try:
                with conn:
                    cur = conn.execute(
                        "DELETE FROM transactions WHERE id = ?", (int(transaction_id),)
                    )
                removed = cur.rowcount > 0
            except sqlite3.Error as exc:
                logger.error("Failed to delete transaction %s: %s", transaction_id, exc)
                raise StorageError(f"Failed to delete transaction {transaction_id}") from exc
            finally:
                conn.close()

        logger.debug("Delete of id %s removed=%s", transaction_id, removed)
        return removed
