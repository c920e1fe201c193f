"""
clportfolio - concentrated liquidity math and LP earnings analytics
"""

from .core.exceptions import (
    PortfolioError, ConfigError, LedgerError, CLMathError,
    InvalidRangeError, InvalidSplitTargetError, InvalidLiquidityError,
)
from .uniswap import LiquidityCalculator
from .analysis import PositionAnalyzer, EarningsCalculator

__version__ = "0.1.0"
__all__ = [
    "LiquidityCalculator",
    "PositionAnalyzer",
    "EarningsCalculator",
    "PortfolioError",
    "ConfigError",
    "LedgerError",
    "CLMathError",
    "InvalidRangeError",
    "InvalidSplitTargetError",
    "InvalidLiquidityError",
]
