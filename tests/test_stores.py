"""
Unit tests for ledger and price stores.
"""

import json
import unittest
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clportfolio.data import (
    JsonLedgerStore, JsonPriceStore, InMemoryLedgerStore, InMemoryPriceStore,
)
from clportfolio.core.interfaces import Transaction


def sample_transactions():
    return [
        Transaction.from_dict({'id': '1', 'date': '2023-01-01', 'assetSymbol': 'HLP',
                               'type': 'DEPOSIT', 'amount': 1, 'pricePerUnit': 1000}),
        Transaction.from_dict({'id': '2', 'date': '2023-01-02', 'assetSymbol': 'USDC',
                               'type': 'INTEREST', 'amount': 5, 'relatedAssetSymbol': 'HLP'}),
    ]


class TestJsonLedgerStore(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = Path(self.tmp.name) / "nested" / "ledger.json"

    def test_missing_file_is_empty(self):
        self.assertEqual(JsonLedgerStore(str(self.path)).load_transactions(), [])

    def test_round_trip(self):
        store = JsonLedgerStore(str(self.path))
        store.save_transactions(sample_transactions())

        self.assertEqual(store.load_transactions(), sample_transactions())
        stored = json.loads(self.path.read_text())
        self.assertEqual(stored[1]['relatedAssetSymbols'], ['HLP'])

    def test_wrapped_backup_format(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({
            'transactions': [t.to_dict() for t in sample_transactions()]
        }))

        self.assertEqual(len(JsonLedgerStore(str(self.path)).load_transactions()), 2)

    def test_bad_records_are_skipped(self):
        self.path.parent.mkdir(parents=True)
        records = [t.to_dict() for t in sample_transactions()]
        records.insert(1, {'id': 'bad', 'date': '2023-01-01', 'type': 'DEPOSIT'})
        self.path.write_text(json.dumps(records))

        store = JsonLedgerStore(str(self.path))
        with self.assertLogs('clportfolio.data.stores', level='WARNING') as logs:
            transactions = store.load_transactions()

        self.assertEqual([t.id for t in transactions], ['1', '2'])
        self.assertIn('Skipping ledger record', logs.output[0])

    def test_append(self):
        store = JsonLedgerStore(str(self.path))
        first, second = sample_transactions()
        store.append(first)
        store.append(second)

        self.assertEqual(store.load_transactions(), [first, second])


class TestJsonPriceStore(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = Path(self.tmp.name) / "prices.json"

    def test_missing_snapshot(self):
        store = JsonPriceStore(str(self.path))

        self.assertEqual(store.get_prices(), {})
        self.assertIsNone(store.get_price('ETH'))
        self.assertTrue(store.is_stale())

    def test_fresh_snapshot(self):
        store = JsonPriceStore(str(self.path), ttl=600)
        store.set_prices({'ETH': 2000, 'USDC': 1})

        self.assertEqual(store.get_prices(), {'ETH': 2000.0, 'USDC': 1.0})
        self.assertEqual(store.get_price('ETH'), 2000.0)
        self.assertFalse(store.is_stale())

    def test_stale_snapshot_still_served(self):
        updated = datetime.now(timezone.utc) - timedelta(hours=2)
        self.path.write_text(json.dumps({
            'prices': {'ETH': 1900},
            'updated': updated.isoformat(),
        }))
        store = JsonPriceStore(str(self.path), ttl=3600)

        self.assertTrue(store.is_stale())
        with self.assertLogs('clportfolio.data.stores', level='WARNING'):
            self.assertEqual(store.get_prices(), {'ETH': 1900.0})

    def test_naive_timestamp_is_utc(self):
        updated = datetime.now(timezone.utc).replace(tzinfo=None)
        self.path.write_text(json.dumps({'prices': {}, 'updated': updated.isoformat()}))

        self.assertFalse(JsonPriceStore(str(self.path), ttl=3600).is_stale())


class TestInMemoryStores(unittest.TestCase):

    def test_ledger(self):
        store = InMemoryLedgerStore()
        first, second = sample_transactions()
        store.save_transactions([first])
        store.append(second)

        loaded = store.load_transactions()
        self.assertEqual(loaded, [first, second])
        loaded.clear()
        self.assertEqual(len(store.load_transactions()), 2)

    def test_prices(self):
        store = InMemoryPriceStore({'ETH': 2000.0})

        self.assertEqual(store.get_price('ETH'), 2000.0)
        self.assertIsNone(store.get_price('BTC'))
        self.assertFalse(store.is_stale())
        store.set_prices({'BTC': 40000.0})
        self.assertEqual(store.get_prices(), {'BTC': 40000.0})


if __name__ == '__main__':
    unittest.main()
