"""Core module - value types, storage interfaces and exceptions."""

from .exceptions import (
    PortfolioError, ConfigError, LedgerError, CLMathError,
    InvalidRangeError, InvalidSplitTargetError, InvalidLiquidityError,
)
from .interfaces import (
    PriceRange, TransactionType, FundingSource, Transaction, Asset, AssetOverride,
    ILedgerStore, IPriceStore, validate_range, parse_date,
)

__all__ = [
    'PortfolioError', 'ConfigError', 'LedgerError', 'CLMathError',
    'InvalidRangeError', 'InvalidSplitTargetError', 'InvalidLiquidityError',
    'PriceRange', 'TransactionType', 'FundingSource', 'Transaction', 'Asset', 'AssetOverride',
    'ILedgerStore', 'IPriceStore', 'validate_range', 'parse_date',
]
