from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Dict

import yaml

from finance_ledger.core.categories import DEFAULT_CATEGORIES, normalize_vocabulary
from finance_ledger.database import LedgerStore

DEFAULT_CONFIG: Dict[str, object] = {
    "db_path": "ledger.db",
    "categories": copy.deepcopy(DEFAULT_CATEGORIES),
    "enforce_categories": False,
    "output_dir": "data",
    "output_modules": {
        "csv": "finance_ledger.outputs.csv_output.CSVOutput",
    },
    "web": {
        "host": "127.0.0.1",
        "port": 8000,
    },
    "log_level": "INFO",
}

CONFIG_PATH = Path(os.environ.get("LEDGERLY_CONFIG", "ledgerly.yaml"))


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: Path | str | None = None) -> Dict[str, object]:
    target = Path(path) if path else CONFIG_PATH
    if not target.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    with target.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {target} must contain a mapping")
    return _merge_defaults(data, DEFAULT_CONFIG)


def save_config(config: Dict[str, object], path: Path | str | None = None) -> None:
    target = Path(path) if path else CONFIG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False, allow_unicode=True)


def ensure_config_file(path: Path | str | None = None) -> Dict[str, object]:
    target = Path(path) if path else CONFIG_PATH
    if target.exists():
        return load_config(target)
    config = copy.deepcopy(DEFAULT_CONFIG)
    save_config(config, target)
    return config


def resolve_log_level(config: Dict[str, object]) -> str:
    return os.environ.get("LEDGERLY_LOG_LEVEL", str(config.get("log_level", "INFO"))).upper()


def configure_logging(config: Dict[str, object]) -> None:
    logging.basicConfig(
        level=resolve_log_level(config),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def store_from_config(config: Dict[str, object], db_path: str | None = None) -> LedgerStore:
    """Build a LedgerStore from config, honouring ``enforce_categories``."""
    path = db_path or os.environ.get("LEDGERLY_DB") or config.get("db_path")
    vocabulary = None
    if config.get("enforce_categories"):
        vocabulary = normalize_vocabulary(config.get("categories"))
    return LedgerStore(path, vocabulary=vocabulary)
