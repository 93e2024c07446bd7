from __future__ import annotations

import argparse
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlparse

from finance_ledger.aggregation import category_breakdown, daily_breakdown, totals
from finance_ledger.config import configure_logging, load_config, store_from_config
from finance_ledger.core.errors import StorageError, ValidationError
from finance_ledger.core.models import EXPENSE
from finance_ledger.database import LedgerStore

logger = logging.getLogger(__name__)

TRANSACTIONS_PATH = "/api/transactions"
MAX_BODY_BYTES = 64 * 1024


def _json_response(handler: BaseHTTPRequestHandler, payload: Any, status: int = 200) -> None:
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", "application/json; charset=utf-8")
    handler.send_header("Cache-Control", "no-store")
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def _get_param(query: dict[str, list[str]], key: str) -> str | None:
    values = query.get(key)
    return values[0] if values else None


def _validation_payload(exc: ValidationError) -> dict[str, str]:
    reason = getattr(exc.reason, "value", exc.reason)
    return {"error": str(exc), "reason": str(reason)}


class LedgerWebHandler(BaseHTTPRequestHandler):
    store: LedgerStore | None = None

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        query = parse_qs(parsed.query)
        path = parsed.path.rstrip("/")

        if path == TRANSACTIONS_PATH:
            self._with_storage(
                "Failed to fetch transactions",
                lambda: [tx.to_dict() for tx in self.store.list()],
            )
            return

        if path == "/api/stats":
            self._with_storage("Failed to fetch stats", lambda: totals(self.store).to_dict())
            return

        if path == "/api/summary/category":
            tx_type = _get_param(query, "type") or EXPENSE
            self._with_storage(
                "Failed to fetch category summary",
                lambda: {
                    name: float(amount)
                    for name, amount in category_breakdown(self.store, tx_type).items()
                },
            )
            return

        if path == "/api/summary/daily":
            self._with_storage(
                "Failed to fetch daily summary",
                lambda: [group.to_dict() for group in daily_breakdown(self.store).values()],
            )
            return

        _json_response(self, {"error": "not found"}, status=404)

    def do_POST(self) -> None:
        if urlparse(self.path).path.rstrip("/") != TRANSACTIONS_PATH:
            _json_response(self, {"error": "not found"}, status=404)
            return

        data = self._read_json_body()
        if data is None:
            return

        self._with_storage(
            "Failed to add transaction",
            lambda: {
                "id": self.store.append(
                    amount=data.get("amount"),
                    type=data.get("type"),
                    category=data.get("category"),
                    description=data.get("description") or "",
                    date=data.get("date"),
                )
            },
        )

    def do_DELETE(self) -> None:
        path = urlparse(self.path).path.rstrip("/")
        prefix = TRANSACTIONS_PATH + "/"
        if not path.startswith(prefix):
            _json_response(self, {"error": "not found"}, status=404)
            return
        raw_id = path[len(prefix):]
        try:
            transaction_id = int(raw_id)
        except ValueError:
            _json_response(self, {"error": f"invalid transaction id: {raw_id}"}, status=400)
            return

        # An absent id is reported as success as well.
        self._with_storage(
            "Failed to delete transaction",
            lambda: {"success": True, "removed": self.store.delete(transaction_id)},
        )

    def _read_json_body(self) -> dict | None:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = -1
        if length < 0 or length > MAX_BODY_BYTES:
            _json_response(self, {"error": "invalid request body"}, status=400)
            return None
        raw = self.rfile.read(length) if length else b""
        try:
            data = json.loads(raw.decode("utf-8")) if raw else {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            _json_response(self, {"error": "request body must be JSON"}, status=400)
            return None
        if not isinstance(data, dict):
            _json_response(self, {"error": "request body must be a JSON object"}, status=400)
            return None
        return data

    def _with_storage(self, failure_message: str, produce) -> None:
        try:
            payload = produce()
        except ValidationError as exc:
            logger.debug("Rejected request %s %s: %s", self.command, self.path, exc)
            _json_response(self, _validation_payload(exc), status=400)
            return
        except StorageError:
            logger.exception("%s %s failed", self.command, self.path)
            _json_response(self, {"error": failure_message}, status=500)
            return
        _json_response(self, payload)


def make_server(store: LedgerStore, host: str = "127.0.0.1", port: int = 8000) -> ThreadingHTTPServer:
    handler = type(
        "LedgerWebHandler",
        (LedgerWebHandler,),
        {"store": store},
    )
    return ThreadingHTTPServer((host, port), handler)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Ledgerly JSON API")
    parser.add_argument("--config", dest="config_path", default=None, help="Path to ledgerly.yaml")
    parser.add_argument("--db", dest="db_path", default=None, help="Path to SQLite database")
    parser.add_argument("--host", default=None, help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default: 8000)")
    args = parser.parse_args(argv)

    config = load_config(args.config_path)
    configure_logging(config)
    web_cfg = config.get("web", {})
    host = args.host or web_cfg.get("host", "127.0.0.1")
    port = args.port if args.port is not None else int(web_cfg.get("port", 8000))

    store = store_from_config(config, args.db_path)
    server = make_server(store, host, port)
    logger.info("Ledgerly API running at http://%s:%s (db: %s)", host, port, store.db_path)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
