"""JSON snapshot of transactions, patterns and cashflows used by the CLI."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..models.core import Cashflow, Transaction, TransactionPattern


logger = logging.getLogger(__name__)


@dataclass
class BudgetSnapshot:
    """Caller-owned state passed to and returned from the import core"""
    transactions: List[Transaction] = field(default_factory=list)
    patterns: List[TransactionPattern] = field(default_factory=list)
    cashflows: List[Cashflow] = field(default_factory=list)

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def replace_transaction(self, updated: Transaction) -> None:
        self.transactions = [updated if tx.id == updated.id else tx for tx in self.transactions]


def load_snapshot(path: str) -> BudgetSnapshot:
    """Load a snapshot; a missing file yields an empty snapshot

    Raises:
        ValueError: If the file is not a valid snapshot
    """
    state_file = Path(path)
    if not state_file.exists():
        logger.info(f"No state file at {path}, starting empty")
        return BudgetSnapshot()

    with open(state_file, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"State file {path} must contain a JSON object")

    snapshot = BudgetSnapshot(
        transactions=[Transaction.from_dict(item) for item in data.get('transactions', [])],
        patterns=[TransactionPattern.from_dict(item) for item in data.get('patterns', [])],
        cashflows=[Cashflow.from_dict(item) for item in data.get('cashflows', [])],
    )
    logger.debug(
        f"Loaded {len(snapshot.transactions)} transactions, {len(snapshot.patterns)} patterns "
        f"and {len(snapshot.cashflows)} cashflows from {path}"
    )
    return snapshot


def save_snapshot(snapshot: BudgetSnapshot, path: str) -> None:
    state_file = Path(path)
    if state_file.parent and not state_file.parent.exists():
        state_file.parent.mkdir(parents=True, exist_ok=True)

    state_data = {
        'last_updated': datetime.now().isoformat(),
        'transactions': [tx.to_dict() for tx in snapshot.transactions],
        'patterns': [pattern.to_dict() for pattern in snapshot.patterns],
        'cashflows': [cashflow.to_dict() for cashflow in snapshot.cashflows],
    }

    with open(state_file, 'w', encoding='utf-8') as f:
        json.dump(state_data, f, indent=2)

    logger.info(f"State saved to {path}")
