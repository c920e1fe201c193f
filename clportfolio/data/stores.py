"""Ledger and price store implementations."""

import json
import logging
from pathlib import Path
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from ..core.interfaces import ILedgerStore, IPriceStore, Transaction
from ..core.exceptions import LedgerError


class JsonLedgerStore(ILedgerStore):
    """File-based ledger stored as a JSON array of transaction records."""

    def __init__(self, path: str):
        """Initialize ledger store.

        Args:
            path: JSON file holding the ledger. A missing file is an empty ledger.
        """
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    def load_transactions(self) -> List[Transaction]:
        """Load and normalize stored transactions.

        Records that cannot be normalized are skipped with a warning.
        """
        if not self.path.exists():
            self.logger.debug(f"No ledger at {self.path}, starting empty")
            return []

        with open(self.path, 'r') as f:
            raw = json.load(f)

        # Backups wrap the array: {"transactions": [...]}
        if isinstance(raw, dict):
            raw = raw.get('transactions', [])

        transactions = []
        for record in raw:
            try:
                transactions.append(Transaction.from_dict(record))
            except LedgerError as e:
                self.logger.warning(f"Skipping ledger record: {e}")

        self.logger.info(f"Loaded {len(transactions)} transactions from {self.path}")
        return transactions

    def save_transactions(self, transactions: List[Transaction]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump([tx.to_dict() for tx in transactions], f, indent=2)
        self.logger.debug(f"Saved {len(transactions)} transactions to {self.path}")


class JsonPriceStore(IPriceStore):
    """File-based price snapshot with a staleness TTL."""

    def __init__(self, path: str, ttl: int = 3600):
        """Initialize price store.

        Args:
            path: JSON file holding {"prices": {...}, "updated": iso}
            ttl: Seconds before the snapshot is considered stale
        """
        self.path = Path(path)
        self.ttl = ttl
        self.logger = logging.getLogger(__name__)

    def _read(self) -> Optional[dict]:
        if not self.path.exists():
            return None
        with open(self.path, 'r') as f:
            return json.load(f)

    def get_prices(self) -> Dict[str, float]:
        snapshot = self._read()
        if snapshot is None:
            self.logger.warning(f"No price snapshot at {self.path}")
            return {}
        if self.is_stale():
            self.logger.warning(f"Price snapshot {self.path} is older than {self.ttl}s")
        return {symbol: float(price) for symbol, price in snapshot.get('prices', {}).items()}

    def set_prices(self, prices: Dict[str, float]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        snapshot = {
            'prices': prices,
            'updated': datetime.now(timezone.utc).isoformat(),
            'ttl': self.ttl
        }
        with open(self.path, 'w') as f:
            json.dump(snapshot, f, indent=2)
        self.logger.debug(f"Stored {len(prices)} prices (TTL: {self.ttl}s)")

    def is_stale(self) -> bool:
        snapshot = self._read()
        if not snapshot or 'updated' not in snapshot:
            return True
        updated = datetime.fromisoformat(snapshot['updated'])
        if updated.tzinfo is None:
            updated = updated.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > updated + timedelta(seconds=self.ttl)


class InMemoryLedgerStore(ILedgerStore):
    """Ledger held in memory."""

    def __init__(self, transactions: Optional[List[Transaction]] = None):
        self._transactions = list(transactions or [])

    def load_transactions(self) -> List[Transaction]:
        return list(self._transactions)

    def save_transactions(self, transactions: List[Transaction]):
        self._transactions = list(transactions)


class InMemoryPriceStore(IPriceStore):
    """Price map held in memory; never stale."""

    def __init__(self, prices: Optional[Dict[str, float]] = None):
        self._prices = dict(prices or {})

    def get_prices(self) -> Dict[str, float]:
        return dict(self._prices)

    def set_prices(self, prices: Dict[str, float]):
        self._prices = dict(prices)

    def is_stale(self) -> bool:
        return False
