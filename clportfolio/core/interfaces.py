"""Core value types and storage interfaces for the portfolio framework."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Any, Optional, Tuple

from .exceptions import InvalidRangeError, LedgerError


def validate_range(lower: float, upper: float) -> None:
    """Reject a price range that is non-positive, empty or inverted.

    Raises:
        InvalidRangeError: If either bound is <= 0 or lower >= upper
    """
    if not (math.isfinite(lower) and math.isfinite(upper)):
        raise InvalidRangeError(f"Range bounds must be finite: [{lower}, {upper}]")
    if lower <= 0 or upper <= 0:
        raise InvalidRangeError(f"Range bounds must be positive: [{lower}, {upper}]")
    if lower >= upper:
        raise InvalidRangeError(f"Range lower bound must be below upper: [{lower}, {upper}]")


@dataclass(frozen=True)
class PriceRange:
    """Bounds within which a position's liquidity is active."""
    lower: float
    upper: float

    def __post_init__(self):
        validate_range(self.lower, self.upper)

    def contains(self, price: float) -> bool:
        return self.lower <= price <= self.upper


class TransactionType(str, Enum):
    """Ledger transaction categories."""
    DEPOSIT = "DEPOSIT"
    INTEREST = "INTEREST"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"
    BUY = "BUY"
    SELL = "SELL"

    @property
    def is_funding(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.BUY)


@dataclass(frozen=True)
class FundingSource:
    """Capital committed to a symbol by a DEPOSIT/BUY row."""
    symbol: str
    cost: float
    date: datetime


def parse_date(value: Any) -> datetime:
    """Parse a ledger date into a timezone-aware datetime (UTC when naive)."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise LedgerError(f"Unparseable date: {value!r}") from e
    else:
        raise LedgerError(f"Missing or invalid date: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _pick(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return default


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


@dataclass(frozen=True)
class Transaction:
    """Canonical ledger transaction.

    Stored records come in several shapes (camelCase backups, snake_case
    exports, single or multiple related symbols); ``from_dict`` folds them
    into this one.
    """
    id: str
    date: datetime
    asset_symbol: str
    type: TransactionType
    amount: float
    price_per_unit: Optional[float] = None
    platform: Optional[str] = None
    payment_currency: Optional[str] = None
    payment_amount: Optional[float] = None
    related_symbols: Tuple[str, ...] = ()
    lp_range: Optional[PriceRange] = None
    monitor_symbol: Optional[str] = None
    notes: Optional[str] = None
    fee: Optional[float] = None
    fee_currency: Optional[str] = None

    def __post_init__(self):
        # Ledger math compares and subtracts dates, so they are always aware
        object.__setattr__(self, 'date', parse_date(self.date))

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Transaction":
        """Normalize a stored record.

        Raises:
            LedgerError: If a required field is missing or invalid
        """
        symbol = _pick(raw, 'assetSymbol', 'asset_symbol')
        if not symbol or not str(symbol).strip():
            raise LedgerError(f"Transaction {raw.get('id')!r} has no asset symbol")

        type_value = _pick(raw, 'type')
        try:
            tx_type = TransactionType(str(type_value).upper())
        except ValueError as e:
            raise LedgerError(f"Unknown transaction type: {type_value!r}") from e

        related = _pick(raw, 'relatedAssetSymbols', 'related_symbols', default=())
        if not related:
            single = _pick(raw, 'relatedAssetSymbol', 'related_asset_symbol')
            related = (single,) if single else ()
        related = tuple(str(s).strip() for s in related if s and str(s).strip())

        lp_range = None
        raw_range = _pick(raw, 'lpRange', 'lp_range')
        if raw_range:
            try:
                lp_range = PriceRange(
                    lower=float(_pick(raw_range, 'min', 'lower')),
                    upper=float(_pick(raw_range, 'max', 'upper')),
                )
            except (AttributeError, TypeError, ValueError) as e:
                raise LedgerError(f"Invalid LP range on transaction {raw.get('id')!r}: {raw_range}") from e

        try:
            amount = float(raw.get('amount', 0) or 0)
            price_per_unit = _optional_float(_pick(raw, 'pricePerUnit', 'price_per_unit'))
            payment_amount = _optional_float(_pick(raw, 'paymentAmount', 'payment_amount'))
            fee = _optional_float(raw.get('fee'))
        except (TypeError, ValueError) as e:
            raise LedgerError(f"Non-numeric field on transaction {raw.get('id')!r}") from e

        return cls(
            id=str(raw.get('id', '')),
            date=raw.get('date'),
            asset_symbol=str(symbol).strip(),
            type=tx_type,
            amount=amount,
            price_per_unit=price_per_unit,
            platform=raw.get('platform'),
            payment_currency=_pick(raw, 'paymentCurrency', 'payment_currency'),
            payment_amount=payment_amount,
            related_symbols=related,
            lp_range=lp_range,
            monitor_symbol=_pick(raw, 'monitorSymbol', 'monitor_symbol'),
            notes=raw.get('notes'),
            fee=fee,
            fee_currency=_pick(raw, 'feeCurrency', 'fee_currency'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the camelCase stored shape."""
        data = {
            'id': self.id,
            'date': self.date.isoformat(),
            'assetSymbol': self.asset_symbol,
            'type': self.type.value,
            'amount': self.amount,
            'pricePerUnit': self.price_per_unit,
            'platform': self.platform,
            'paymentCurrency': self.payment_currency,
            'paymentAmount': self.payment_amount,
            'relatedAssetSymbols': list(self.related_symbols) or None,
            'monitorSymbol': self.monitor_symbol,
            'notes': self.notes,
            'fee': self.fee,
            'feeCurrency': self.fee_currency,
        }
        if self.lp_range:
            data['lpRange'] = {'min': self.lp_range.lower, 'max': self.lp_range.upper}
        return {k: v for k, v in data.items() if v is not None}

    def funding_source(self) -> Optional[FundingSource]:
        """Capital this row put into its asset, or None for non-funding rows."""
        if not self.type.is_funding:
            return None
        cost = self.payment_amount or (self.amount * (self.price_per_unit or 0))
        return FundingSource(symbol=self.asset_symbol, cost=cost, date=self.date)

    def references(self, symbol: str) -> bool:
        """Whether this row is for, or linked to, the given symbol."""
        return self.asset_symbol == symbol or symbol in self.related_symbols


@dataclass
class Asset:
    """Holding derived from replaying the ledger."""
    symbol: str
    quantity: float = 0.0
    total_invested: float = 0.0
    average_buy_price: float = 0.0
    current_price: float = 0.0
    current_value: float = 0.0
    unrealized_pnl: float = 0.0
    pnl_percentage: float = 0.0
    lp_range: Optional[PriceRange] = None
    monitor_symbol: Optional[str] = None
    monitor_price: Optional[float] = None
    in_range: Optional[bool] = None
    earned_quantity: float = 0.0
    locked_in_lp_quantity: float = 0.0
    reward_tokens: List[str] = field(default_factory=list)


class ILedgerStore(ABC):
    """Interface for transaction ledger persistence."""

    @abstractmethod
    def load_transactions(self) -> List[Transaction]:
        """Load every stored transaction."""
        pass

    @abstractmethod
    def save_transactions(self, transactions: List[Transaction]):
        """Replace the stored ledger."""
        pass

    def append(self, transaction: Transaction):
        """Add one transaction to the stored ledger."""
        transactions = self.load_transactions()
        transactions.append(transaction)
        self.save_transactions(transactions)


class IPriceStore(ABC):
    """Interface for resolved current prices (symbol -> USD)."""

    @abstractmethod
    def get_prices(self) -> Dict[str, float]:
        """Get the full price map."""
        pass

    @abstractmethod
    def set_prices(self, prices: Dict[str, float]):
        """Replace the stored price map."""
        pass

    @abstractmethod
    def is_stale(self) -> bool:
        """Whether the stored snapshot is older than its TTL."""
        pass

    def get_price(self, symbol: str) -> Optional[float]:
        """Get a single price, or None when unknown."""
        return self.get_prices().get(symbol)


@dataclass(frozen=True)
class AssetOverride:
    """User-supplied correction for a derived asset."""
    avg_buy_price: Optional[float] = None
    reward_tokens: Optional[List[str]] = None
