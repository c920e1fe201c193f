"""Concentrated liquidity calculations and utilities."""

from .v3_calculator import (
    LiquidityCalculator, Position, DepositAllocation, ProjectedValue,
    SPLIT_NOTIONAL, DEFAULT_SOLVER_ITERATIONS,
)

__all__ = [
    'LiquidityCalculator', 'Position', 'DepositAllocation', 'ProjectedValue',
    'SPLIT_NOTIONAL', 'DEFAULT_SOLVER_ITERATIONS',
]
