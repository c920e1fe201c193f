"""
Concentrated liquidity (Uniswap V3 style) mathematics on human-readable prices.

Prices are quote per unit of base (token1 per token0), e.g. USDC per ETH.
"""

import math
import logging
from typing import Tuple
from dataclasses import dataclass

from ..core.interfaces import validate_range
from ..core.exceptions import (
    CLMathError, InvalidRangeError, InvalidSplitTargetError, InvalidLiquidityError,
)

# Notional used when only the value split matters
SPLIT_NOTIONAL = 1000.0
DEFAULT_SOLVER_ITERATIONS = 20

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """Token amounts implied by a liquidity value at a given price."""
    amount0: float  # base asset
    amount1: float  # quote asset
    liquidity: float


@dataclass(frozen=True)
class DepositAllocation(Position):
    """Position sized from a deposit value, with its split by value."""
    split0_pct: float = 0.0
    split1_pct: float = 0.0


@dataclass(frozen=True)
class ProjectedValue:
    """Position contents and value at a target price."""
    amount0: float
    amount1: float
    value_in_quote: float


class LiquidityCalculator:
    """Handles concentrated liquidity calculations."""

    @staticmethod
    def _check_liquidity(liquidity: float):
        if liquidity < 0:
            raise InvalidLiquidityError(f"Liquidity must be non-negative, got {liquidity}")

    @staticmethod
    def _amounts_at_sqrt(
        sqrt_p: float,
        sqrt_pa: float,
        sqrt_pb: float,
        liquidity: float
    ) -> Tuple[float, float]:
        if sqrt_p <= sqrt_pa:
            # At or below range - all liquidity is in token0
            return liquidity * (sqrt_pb - sqrt_pa) / (sqrt_pa * sqrt_pb), 0.0
        if sqrt_p >= sqrt_pb:
            # At or above range - all liquidity is in token1
            return 0.0, liquidity * (sqrt_pb - sqrt_pa)
        return (
            liquidity * (sqrt_pb - sqrt_p) / (sqrt_p * sqrt_pb),
            liquidity * (sqrt_p - sqrt_pa)
        )

    @staticmethod
    def amounts_for_liquidity(
        price: float,
        range_lower: float,
        range_upper: float,
        liquidity: float
    ) -> Tuple[float, float]:
        """
        Calculate token amounts held by a liquidity value at a price.
        Returns (amount0, amount1).
        """
        validate_range(range_lower, range_upper)
        LiquidityCalculator._check_liquidity(liquidity)

        return LiquidityCalculator._amounts_at_sqrt(
            math.sqrt(max(price, 0.0)),
            math.sqrt(range_lower),
            math.sqrt(range_upper),
            liquidity
        )

    @staticmethod
    def required_amounts_for_deposit(
        price: float,
        range_lower: float,
        range_upper: float,
        deposit_value: float
    ) -> DepositAllocation:
        """
        Size a position so its value at ``price`` equals ``deposit_value``
        (in quote units) and report the resulting split by value.

        Raises:
            InvalidRangeError: If the range is invalid or price <= 0
        """
        validate_range(range_lower, range_upper)
        if not price > 0:
            raise InvalidRangeError(f"Price must be positive, got {price}")
        if deposit_value < 0:
            raise CLMathError(f"Deposit value must be non-negative, got {deposit_value}")

        sqrt_p = math.sqrt(price)
        sqrt_pa = math.sqrt(range_lower)
        sqrt_pb = math.sqrt(range_upper)

        if sqrt_p <= sqrt_pa:
            # Only token0
            liquidity = (deposit_value / price) * (sqrt_pa * sqrt_pb) / (sqrt_pb - sqrt_pa)
        elif sqrt_p >= sqrt_pb:
            # Only token1
            liquidity = deposit_value / (sqrt_pb - sqrt_pa)
        else:
            # value = x * P + y, with x * P = L * (sqrtPb - sqrtP) * sqrtP / sqrtPb
            multiplier = (sqrt_pb - sqrt_p) * sqrt_p / sqrt_pb + (sqrt_p - sqrt_pa)
            liquidity = deposit_value / multiplier

        amount0, amount1 = LiquidityCalculator._amounts_at_sqrt(sqrt_p, sqrt_pa, sqrt_pb, liquidity)
        value0 = amount0 * price
        value1 = amount1
        total = value0 + value1

        return DepositAllocation(
            amount0=amount0,
            amount1=amount1,
            liquidity=liquidity,
            split0_pct=value0 / total * 100 if total > 0 else 0.0,
            split1_pct=value1 / total * 100 if total > 0 else 0.0
        )

    @staticmethod
    def project_value(
        target_price: float,
        range_lower: float,
        range_upper: float,
        liquidity: float
    ) -> ProjectedValue:
        """Value an existing liquidity amount at a different price."""
        amount0, amount1 = LiquidityCalculator.amounts_for_liquidity(
            target_price, range_lower, range_upper, liquidity
        )
        return ProjectedValue(
            amount0=amount0,
            amount1=amount1,
            value_in_quote=amount0 * target_price + amount1
        )

    @staticmethod
    def price_for_target_split(
        target_split0_pct: float,
        range_lower: float,
        range_upper: float,
        iterations: int = DEFAULT_SOLVER_ITERATIONS
    ) -> float:
        """
        Find the price at which a fresh deposit holds ``target_split0_pct``
        of its value in token0.

        split0 falls monotonically from 100 at the lower bound to 0 at the
        upper bound, so the range is bisected a fixed number of times. The
        midpoint is geometric, which keeps the precision relative to price
        on wide ranges.

        Raises:
            InvalidRangeError: If the range is invalid
            InvalidSplitTargetError: If the target is outside [0, 100]
        """
        validate_range(range_lower, range_upper)
        if not 0 <= target_split0_pct <= 100:
            raise InvalidSplitTargetError(
                f"Target split must be within [0, 100], got {target_split0_pct}"
            )
        if iterations < 1:
            raise CLMathError(f"Iterations must be at least 1, got {iterations}")

        low, high = range_lower, range_upper
        for _ in range(iterations):
            mid = math.sqrt(low * high)
            split = LiquidityCalculator.required_amounts_for_deposit(
                mid, range_lower, range_upper, SPLIT_NOTIONAL
            ).split0_pct
            if split > target_split0_pct:
                low = mid
            else:
                high = mid

        price = math.sqrt(low * high)
        logger.debug(f"Split {target_split0_pct:.4f}% solved at price {price:.6f} "
                     f"after {iterations} iterations")
        return price

    @staticmethod
    def delta_exposure(
        price: float,
        range_lower: float,
        range_upper: float,
        liquidity: float
    ) -> float:
        """
        Units of token0 the position is exposed to at ``price``, i.e. the
        spot short that would neutralize it right now.
        """
        amount0, _ = LiquidityCalculator.amounts_for_liquidity(
            price, range_lower, range_upper, liquidity
        )
        return amount0
