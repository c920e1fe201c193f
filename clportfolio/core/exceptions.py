"""Custom exceptions for clportfolio"""


class PortfolioError(Exception):
    """Base exception for all clportfolio errors"""
    pass


class ConfigError(PortfolioError):
    """Configuration-related errors"""
    pass


class LedgerError(PortfolioError):
    """A stored ledger record could not be normalized"""
    pass


class CLMathError(PortfolioError, ValueError):
    """Rejected input to the concentrated-liquidity math"""
    pass


class InvalidRangeError(CLMathError):
    """Price range is empty, inverted or non-positive"""
    pass


class InvalidSplitTargetError(CLMathError):
    """Target token0 split is outside [0, 100]"""
    pass


class InvalidLiquidityError(CLMathError):
    """Liquidity is negative"""
    pass
