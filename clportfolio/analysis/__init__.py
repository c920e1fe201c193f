"""Analysis module for position projections, IL and earnings attribution."""

from .position_analyzer import PositionAnalyzer, ValuationResult, SimulationResult
from .earnings import (
    EarningsCalculator, EarningsSourceRecord, EnhancedEarningsRecord,
    TokenTotal, EarningsSummary, LPFeeRecovery, LPFeeReport, is_lp_symbol, lp_assets,
)
from .portfolio import calculate_assets, calculate_portfolio_history

__all__ = [
    'PositionAnalyzer', 'ValuationResult', 'SimulationResult',
    'EarningsCalculator', 'EarningsSourceRecord', 'EnhancedEarningsRecord',
    'TokenTotal', 'EarningsSummary', 'LPFeeRecovery', 'LPFeeReport', 'is_lp_symbol', 'lp_assets',
    'calculate_assets', 'calculate_portfolio_history',
]
