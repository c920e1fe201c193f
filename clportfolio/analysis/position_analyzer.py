"""
Analysis module for projecting concentrated liquidity positions and
calculating impermanent loss.
"""

import logging
from typing import Optional, Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..core.interfaces import validate_range
from ..uniswap import LiquidityCalculator, DepositAllocation, ProjectedValue

DEFAULT_FEE_APR = 20.0
DEFAULT_DURATION_DAYS = 30
DEFAULT_SCENARIO_POINTS = 50


@dataclass(frozen=True)
class ValuationResult:
    """LP position against holding its entry-time tokens, at a target price."""
    lp_value: float
    held_value: float
    il_usd: float
    il_percentage: float
    projection: ProjectedValue


@dataclass(frozen=True)
class SimulationResult:
    """Forward-looking view of a planned position."""
    initial: DepositAllocation
    valuation: ValuationResult
    estimated_fees: float
    net_pnl: float
    target_change_pct: float


class PositionAnalyzer:
    """Projects CL positions for IL, fee and PnL scenarios."""

    def __init__(self, calculator: Optional[LiquidityCalculator] = None):
        self.calculator = calculator or LiquidityCalculator()
        self.logger = logging.getLogger(__name__)

    def calculate_impermanent_loss(
        self,
        entry_price: float,
        target_price: float,
        range_lower: float,
        range_upper: float,
        deposit_value: float
    ) -> ValuationResult:
        """
        Compare the LP position against holding its entry-time tokens.

        IL is reported as LP value minus held value, so it is zero when the
        price returns to entry and negative otherwise.
        """
        initial = self.calculator.required_amounts_for_deposit(
            entry_price, range_lower, range_upper, deposit_value
        )

        # Value if the entry-time tokens were simply held
        held_value = initial.amount0 * target_price + initial.amount1

        projection = self.calculator.project_value(
            target_price, range_lower, range_upper, initial.liquidity
        )
        lp_value = projection.value_in_quote

        il_usd = lp_value - held_value
        il_percentage = il_usd / held_value * 100 if held_value > 0 else 0.0

        return ValuationResult(
            lp_value=lp_value,
            held_value=held_value,
            il_usd=il_usd,
            il_percentage=il_percentage,
            projection=projection
        )

    def simulate(
        self,
        entry_price: float,
        target_price: float,
        range_lower: float,
        range_upper: float,
        deposit_value: float,
        fee_apr: float = DEFAULT_FEE_APR,
        duration_days: float = DEFAULT_DURATION_DAYS
    ) -> SimulationResult:
        """
        Project a planned position: entry allocation, IL at the target price
        and fees accrued at a flat APR over the holding period.
        """
        initial = self.calculator.required_amounts_for_deposit(
            entry_price, range_lower, range_upper, deposit_value
        )
        valuation = self.calculate_impermanent_loss(
            entry_price, target_price, range_lower, range_upper, deposit_value
        )

        daily_rate = fee_apr / 100 / 365
        estimated_fees = valuation.lp_value * daily_rate * duration_days

        return SimulationResult(
            initial=initial,
            valuation=valuation,
            estimated_fees=estimated_fees,
            net_pnl=valuation.il_usd + estimated_fees,
            target_change_pct=(target_price / entry_price - 1) * 100
        )

    def price_scenarios(
        self,
        entry_price: float,
        range_lower: float,
        range_upper: float,
        deposit_value: float,
        prices: Optional[Sequence[float]] = None,
        points: int = DEFAULT_SCENARIO_POINTS
    ) -> pd.DataFrame:
        """
        Evaluate the position over a grid of target prices.

        Returns a DataFrame with one row per price and columns
        price, amount0, amount1, lp_value, held_value, il_usd, il_pct, delta.
        """
        validate_range(range_lower, range_upper)
        initial = self.calculator.required_amounts_for_deposit(
            entry_price, range_lower, range_upper, deposit_value
        )

        if prices is None:
            grid = np.linspace(range_lower * 0.5, range_upper * 1.5, points)
        else:
            grid = np.asarray(prices, dtype=float)
        grid = np.clip(grid, 0.0, None)

        sqrt_pa = np.sqrt(range_lower)
        sqrt_pb = np.sqrt(range_upper)
        # Clamping sqrt(P) into the range reproduces the out-of-range branches
        sqrt_p = np.clip(np.sqrt(grid), sqrt_pa, sqrt_pb)

        liquidity = initial.liquidity
        amount0 = liquidity * (sqrt_pb - sqrt_p) / (sqrt_p * sqrt_pb)
        amount1 = liquidity * (sqrt_p - sqrt_pa)

        lp_value = amount0 * grid + amount1
        held_value = initial.amount0 * grid + initial.amount1
        il_usd = lp_value - held_value
        il_pct = np.divide(
            il_usd, held_value, out=np.zeros_like(il_usd), where=held_value > 0
        ) * 100

        self.logger.debug(f"Evaluated {len(grid)} price scenarios for range "
                          f"[{range_lower}, {range_upper}]")

        return pd.DataFrame({
            'price': grid,
            'amount0': amount0,
            'amount1': amount1,
            'lp_value': lp_value,
            'held_value': held_value,
            'il_usd': il_usd,
            'il_pct': il_pct,
            'delta': amount0,
        })
