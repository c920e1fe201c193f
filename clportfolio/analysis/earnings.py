"""
Earnings attribution: groups reward (INTEREST) transactions by the LP
positions that produced them and derives ROI / APR from the ledger.
"""

import math
import logging
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Iterable

from ..core.interfaces import Asset, Transaction, TransactionType

SOURCE_SEPARATOR = ' + '
SECONDS_PER_DAY = 24 * 60 * 60

@dataclass(frozen=True)
class EarningsSourceRecord:
    """Rewards attributed to one source (a single LP or a set of them)."""
    source: str
    source_symbols: List[str]
    tokens: Dict[str, float]
    total_value_usd: float
    transactions: List[Transaction] = field(default_factory=list)


@dataclass(frozen=True)
class EnhancedEarningsRecord(EarningsSourceRecord):
    """Source record with return metrics."""
    roi: Optional[float] = None
    apr: Optional[float] = None
    total_invested: float = 0.0
    days_active: int = 0


@dataclass(frozen=True)
class TokenTotal:
    """Aggregate earnings in one reward token."""
    token: str
    quantity: float
    value: float


@dataclass(frozen=True)
class EarningsSummary:
    enhanced: List[EnhancedEarningsRecord]
    totals_by_token: List[TokenTotal]
    total_usd: float


@dataclass(frozen=True)
class LPFeeRecovery:
    """How much of an LP position's principal its claimed fees have paid back."""
    symbol: str
    principal: float
    claimed_usd: float
    recovery_percent: float
    is_free_rolling: bool
    current_value: float
    net_position: float


@dataclass(frozen=True)
class LPFeeReport:
    positions: List[LPFeeRecovery]
    total_principal: float
    total_claimed: float
    total_net: float


def is_lp_symbol(symbol: str) -> bool:
    """Naming heuristic for LP / pool assets.

    Known to misclassify plain hyphenated tickers (e.g. ``X-COIN``); kept as
    is because it decides which historical rewards count as LP earnings.
    """
    upper = symbol.upper()
    return (
        upper.startswith('LP')
        or '/' in symbol
        or '-' in symbol
        or 'POOL' in upper
    )


def price_of(prices: Optional[Dict[str, float]], symbol: str) -> float:
    """Current price for a symbol, 0 when the feed has none."""
    if prices:
        price = prices.get(symbol)
        if price is None:
            price = prices.get(symbol.strip().upper())
        if price:
            return price
    return 0.0


def lp_assets(assets: Sequence[Asset]) -> List[Asset]:
    """Holdings that look like liquidity positions."""
    return [a for a in assets if a.lp_range or is_lp_symbol(a.symbol)]


def _index_assets(assets: Iterable[Asset]) -> Dict[str, Asset]:
    indexed: Dict[str, Asset] = {}
    for asset in assets:
        indexed.setdefault(asset.symbol, asset)
    return indexed


class EarningsCalculator:
    """Aggregates realized LP rewards from a transaction ledger."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _price(self, prices: Optional[Dict[str, float]], symbol: str) -> float:
        price = price_of(prices, symbol)
        if not price:
            self.logger.debug(f"No price for {symbol}, valuing at 0")
        return price

    @staticmethod
    def _is_lp_source(symbol: str, assets_by_symbol: Dict[str, Asset]) -> bool:
        asset = assets_by_symbol.get(symbol)
        return bool(asset and asset.lp_range) or is_lp_symbol(symbol)

    def calculate_earnings_by_source(
        self,
        assets: Sequence[Asset],
        transactions: Sequence[Transaction],
        prices: Optional[Dict[str, float]]
    ) -> Dict[str, EarningsSourceRecord]:
        """
        Group INTEREST transactions linked to LP-like sources.

        The key is the sorted set of source symbols joined with " + ".
        A reward token without a price contributes 0 to the USD total.
        """
        assets_by_symbol = _index_assets(assets)
        groups: Dict[str, dict] = {}

        for tx in transactions:
            if tx.type != TransactionType.INTEREST or not tx.related_symbols:
                continue
            if not any(self._is_lp_source(s, assets_by_symbol) for s in tx.related_symbols):
                continue

            source_symbols = sorted(tx.related_symbols)
            key = SOURCE_SEPARATOR.join(source_symbols)
            group = groups.setdefault(key, {
                'source_symbols': source_symbols,
                'tokens': {},
                'total_value_usd': 0.0,
                'transactions': [],
            })

            token = tx.asset_symbol.strip().upper()
            group['tokens'][token] = group['tokens'].get(token, 0.0) + tx.amount
            group['total_value_usd'] += tx.amount * self._price(prices, tx.asset_symbol)
            group['transactions'].append(tx)

        self.logger.debug(f"Attributed rewards to {len(groups)} sources")
        return {
            key: EarningsSourceRecord(source=key, **group)
            for key, group in groups.items()
        }

    def _total_invested(
        self,
        symbols: Sequence[str],
        assets_by_symbol: Dict[str, Asset],
        transactions: Sequence[Transaction]
    ) -> float:
        total = 0.0
        for symbol in symbols:
            asset = assets_by_symbol.get(symbol)
            if asset and asset.total_invested > 0:
                total += asset.total_invested
                continue
            # No tracked asset: fall back to the ledger's funding cost basis
            for tx in transactions:
                funding = tx.funding_source()
                if funding and funding.symbol == symbol:
                    total += funding.cost
        return total

    @staticmethod
    def _first_funding_date(
        symbols: Sequence[str],
        transactions: Sequence[Transaction]
    ) -> Optional[datetime]:
        dates = [
            tx.date for tx in transactions
            if tx.type.is_funding and any(tx.references(s) for s in symbols)
        ]
        return min(dates) if dates else None

    def enhance_earnings(
        self,
        earnings_by_source: Dict[str, EarningsSourceRecord],
        assets: Sequence[Asset],
        transactions: Sequence[Transaction],
        now: Optional[datetime] = None
    ) -> List[EnhancedEarningsRecord]:
        """
        Attach invested capital, ROI, days active and annualized APR to
        each source.

        ROI is None without invested capital; APR is None without a dated
        funding transaction.
        """
        now = now or datetime.now(timezone.utc)
        assets_by_symbol = _index_assets(assets)
        enhanced = []

        for record in earnings_by_source.values():
            symbols = record.source_symbols or [record.source]
            total_invested = self._total_invested(symbols, assets_by_symbol, transactions)

            roi = None
            apr = None
            days_active = 0

            if total_invested > 0:
                roi = record.total_value_usd / total_invested * 100

                first_date = self._first_funding_date(symbols, transactions)
                if first_date:
                    elapsed = abs((now - first_date).total_seconds())
                    days_active = math.ceil(elapsed / SECONDS_PER_DAY)
                    if days_active > 0:
                        apr = roi / days_active * 365

            base = {f.name: getattr(record, f.name) for f in fields(EarningsSourceRecord)}
            enhanced.append(EnhancedEarningsRecord(
                **base,
                roi=roi,
                apr=apr,
                total_invested=total_invested,
                days_active=days_active
            ))

        return enhanced

    def calculate_totals_by_token(
        self,
        earnings_by_source: Dict[str, EarningsSourceRecord],
        prices: Optional[Dict[str, float]]
    ) -> List[TokenTotal]:
        """Flatten earnings per reward token, highest USD value first."""
        quantities: Dict[str, float] = {}
        for record in earnings_by_source.values():
            for token, amount in record.tokens.items():
                quantities[token] = quantities.get(token, 0.0) + amount

        totals = [
            TokenTotal(token=token, quantity=quantity, value=quantity * self._price(prices, token))
            for token, quantity in quantities.items()
        ]
        return sorted(totals, key=lambda t: t.value, reverse=True)

    @staticmethod
    def total_earnings_usd(totals: Sequence[TokenTotal]) -> float:
        return sum(t.value for t in totals)

    def summarize(
        self,
        assets: Sequence[Asset],
        transactions: Sequence[Transaction],
        prices: Optional[Dict[str, float]],
        now: Optional[datetime] = None
    ) -> EarningsSummary:
        """Run attribution, enhancement and token totals in one pass."""
        by_source = self.calculate_earnings_by_source(assets, transactions, prices)
        totals = self.calculate_totals_by_token(by_source, prices)
        return EarningsSummary(
            enhanced=self.enhance_earnings(by_source, assets, transactions, now=now),
            totals_by_token=totals,
            total_usd=self.total_earnings_usd(totals)
        )

    def lp_fee_recovery(
        self,
        assets: Sequence[Asset],
        transactions: Sequence[Transaction],
        prices: Optional[Dict[str, float]]
    ) -> LPFeeReport:
        """
        Track how far claimed fees have paid back each LP position.

        A claim is valued at its payment amount, else at its own price per
        unit, else at the reward token's current price. A position whose
        claims reach 100% of principal is free-rolling. Positions are
        ordered by claimed value, highest first.
        """
        positions = []
        for lp in lp_assets(assets):
            principal = lp.total_invested
            claimed_usd = 0.0
            for tx in transactions:
                if tx.type != TransactionType.INTEREST or lp.symbol not in tx.related_symbols:
                    continue
                claimed_usd += tx.payment_amount or (
                    tx.amount * (tx.price_per_unit or self._price(prices, tx.asset_symbol))
                )

            recovery_percent = claimed_usd / principal * 100 if principal > 0 else 0.0
            # Unpriced positions are carried at principal
            current_value = lp.current_value or principal
            positions.append(LPFeeRecovery(
                symbol=lp.symbol,
                principal=principal,
                claimed_usd=claimed_usd,
                recovery_percent=recovery_percent,
                is_free_rolling=recovery_percent >= 100,
                current_value=current_value,
                net_position=claimed_usd + (current_value - principal)
            ))

        positions.sort(key=lambda p: p.claimed_usd, reverse=True)
        self.logger.debug(f"Tracked fee recovery for {len(positions)} LP positions")
        return LPFeeReport(
            positions=positions,
            total_principal=sum(p.principal for p in positions),
            total_claimed=sum(p.claimed_usd for p in positions),
            total_net=sum(p.net_position for p in positions)
        )
