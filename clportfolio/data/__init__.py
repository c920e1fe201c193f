"""Storage implementations for the ledger and price snapshots."""

from .stores import JsonLedgerStore, JsonPriceStore, InMemoryLedgerStore, InMemoryPriceStore

__all__ = ['JsonLedgerStore', 'JsonPriceStore', 'InMemoryLedgerStore', 'InMemoryPriceStore']
