# finance_ledger/core/categories.py
from typing import Dict, List

from finance_ledger.core.models import EXPENSE, INCOME

DEFAULT_CATEGORIES: Dict[str, List[str]] = {
    EXPENSE: ["餐饮", "交通", "购物", "娱乐", "居住", "医疗", "教育", "其他"],
    INCOME: ["工资", "奖金", "投资", "兼职", "礼金", "其他"],
}


def normalize_vocabulary(raw) -> Dict[str, List[str]]:
    """Coerce a config ``categories`` mapping into per-type string lists."""
    vocab: Dict[str, List[str]] = {}
    for tx_type in (EXPENSE, INCOME):
        names = (raw or {}).get(tx_type) or []
        vocab[tx_type] = [str(name).strip() for name in names if str(name).strip()]
    return vocab
