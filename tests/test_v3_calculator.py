"""
Unit tests for the concentrated liquidity calculator module.
"""

import unittest
import math

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clportfolio.uniswap import LiquidityCalculator, DepositAllocation
from clportfolio.core.exceptions import (
    CLMathError, InvalidRangeError, InvalidSplitTargetError, InvalidLiquidityError,
)


class TestAmountsForLiquidity(unittest.TestCase):
    """Test liquidity to token amount conversion."""

    def setUp(self):
        self.calculator = LiquidityCalculator()
        self.lower = 1500.0
        self.upper = 2500.0
        self.liquidity = 1000.0

    def test_boundary_at_lower_is_all_token0(self):
        amount0, amount1 = self.calculator.amounts_for_liquidity(
            self.lower, self.lower, self.upper, self.liquidity
        )
        self.assertGreater(amount0, 0)
        self.assertEqual(amount1, 0)

    def test_boundary_at_upper_is_all_token1(self):
        amount0, amount1 = self.calculator.amounts_for_liquidity(
            self.upper, self.lower, self.upper, self.liquidity
        )
        self.assertEqual(amount0, 0)
        self.assertGreater(amount1, 0)

    def test_in_range_holds_both_tokens(self):
        amount0, amount1 = self.calculator.amounts_for_liquidity(
            2000, self.lower, self.upper, self.liquidity
        )
        self.assertGreater(amount0, 0)
        self.assertGreater(amount1, 0)

    def test_out_of_range_amounts_are_constant(self):
        """Below/above the range the position no longer changes."""
        below_a = self.calculator.amounts_for_liquidity(100, self.lower, self.upper, self.liquidity)
        below_b = self.calculator.amounts_for_liquidity(1000, self.lower, self.upper, self.liquidity)
        self.assertEqual(below_a, below_b)

        above_a = self.calculator.amounts_for_liquidity(3000, self.lower, self.upper, self.liquidity)
        above_b = self.calculator.amounts_for_liquidity(90000, self.lower, self.upper, self.liquidity)
        self.assertEqual(above_a, above_b)

    def test_closed_form_values(self):
        sqrt_pa, sqrt_pb = math.sqrt(self.lower), math.sqrt(self.upper)
        sqrt_p = math.sqrt(2000)

        amount0, amount1 = self.calculator.amounts_for_liquidity(
            2000, self.lower, self.upper, self.liquidity
        )
        self.assertAlmostEqual(amount0, self.liquidity * (sqrt_pb - sqrt_p) / (sqrt_p * sqrt_pb))
        self.assertAlmostEqual(amount1, self.liquidity * (sqrt_p - sqrt_pa))

        amount0, _ = self.calculator.amounts_for_liquidity(1000, self.lower, self.upper, self.liquidity)
        self.assertAlmostEqual(amount0, self.liquidity * (sqrt_pb - sqrt_pa) / (sqrt_pa * sqrt_pb))

        _, amount1 = self.calculator.amounts_for_liquidity(3000, self.lower, self.upper, self.liquidity)
        self.assertAlmostEqual(amount1, self.liquidity * (sqrt_pb - sqrt_pa))

    def test_zero_liquidity(self):
        self.assertEqual(
            self.calculator.amounts_for_liquidity(2000, self.lower, self.upper, 0),
            (0.0, 0.0)
        )

    def test_negative_liquidity_rejected(self):
        with self.assertRaises(InvalidLiquidityError):
            self.calculator.amounts_for_liquidity(2000, self.lower, self.upper, -1)

    def test_invalid_range_rejected(self):
        for lower, upper in [(2500, 1500), (2000, 2000), (0, 2000), (-5, 2000)]:
            with self.assertRaises(InvalidRangeError):
                self.calculator.amounts_for_liquidity(2000, lower, upper, self.liquidity)


class TestRequiredAmountsForDeposit(unittest.TestCase):
    """Test sizing a position from a deposit value."""

    def setUp(self):
        self.calculator = LiquidityCalculator()

    def test_mid_range_deposit(self):
        result = self.calculator.required_amounts_for_deposit(2000, 1500, 2500, 1000)

        self.assertIsInstance(result, DepositAllocation)
        self.assertGreater(result.split0_pct, 0)
        self.assertLess(result.split0_pct, 100)
        self.assertGreater(result.liquidity, 0)
        # Position is worth exactly the deposit at entry
        self.assertAlmostEqual(result.amount0 * 2000 + result.amount1, 1000, places=9)

    def test_below_range_is_all_token0(self):
        result = self.calculator.required_amounts_for_deposit(1000, 1500, 2500, 1000)

        self.assertEqual(result.amount1, 0)
        self.assertEqual(result.split0_pct, 100)
        self.assertEqual(result.split1_pct, 0)
        self.assertAlmostEqual(result.amount0 * 1000, 1000, places=9)

    def test_above_range_is_all_token1(self):
        result = self.calculator.required_amounts_for_deposit(3000, 1500, 2500, 1000)

        self.assertEqual(result.amount0, 0)
        self.assertEqual(result.split1_pct, 100)
        self.assertAlmostEqual(result.amount1, 1000, places=9)

    def test_zero_deposit_has_zero_split(self):
        result = self.calculator.required_amounts_for_deposit(2000, 1500, 2500, 0)
        self.assertEqual(result.split0_pct, 0)
        self.assertEqual(result.split1_pct, 0)
        self.assertEqual(result.liquidity, 0)

    def test_split_conservation(self):
        ranges = [(1500, 2500), (0.5, 2.0), (1, 10000), (0.999, 1.001)]
        for lower, upper in ranges:
            for fraction in (0.0, 0.1, 0.37, 0.5, 0.9, 1.0):
                price = lower + (upper - lower) * fraction
                with self.subTest(lower=lower, upper=upper, price=price):
                    result = self.calculator.required_amounts_for_deposit(price, lower, upper, 1000)
                    self.assertAlmostEqual(result.split0_pct + result.split1_pct, 100, delta=1e-6)

    def test_split_is_monotonic_in_price(self):
        lower, upper = 1500, 2500
        previous = 100.0
        for step in range(101):
            price = lower + (upper - lower) * step / 100
            split = self.calculator.required_amounts_for_deposit(price, lower, upper, 1000).split0_pct
            self.assertLessEqual(split, previous + 1e-9)
            previous = split

    def test_invalid_inputs_rejected(self):
        with self.assertRaises(InvalidRangeError):
            self.calculator.required_amounts_for_deposit(2000, 2500, 1500, 1000)
        with self.assertRaises(InvalidRangeError):
            self.calculator.required_amounts_for_deposit(2000, 2000, 2000, 1000)
        with self.assertRaises(InvalidRangeError):
            self.calculator.required_amounts_for_deposit(0, 1500, 2500, 1000)
        with self.assertRaises(InvalidRangeError):
            self.calculator.required_amounts_for_deposit(-10, 1500, 2500, 1000)
        with self.assertRaises(CLMathError):
            self.calculator.required_amounts_for_deposit(2000, 1500, 2500, -1)

    def test_range_errors_are_value_errors(self):
        with self.assertRaises(ValueError):
            self.calculator.required_amounts_for_deposit(2000, 2500, 1500, 1000)


class TestProjectValue(unittest.TestCase):
    """Test valuing an existing position at another price."""

    def setUp(self):
        self.calculator = LiquidityCalculator()
        self.position = self.calculator.required_amounts_for_deposit(2000, 1500, 2500, 1000)

    def test_projection_at_entry_matches_deposit(self):
        projected = self.calculator.project_value(2000, 1500, 2500, self.position.liquidity)
        self.assertAlmostEqual(projected.value_in_quote, 1000, places=9)
        self.assertEqual(projected.amount0, self.position.amount0)
        self.assertEqual(projected.amount1, self.position.amount1)

    def test_projection_above_range_is_all_quote(self):
        projected = self.calculator.project_value(3000, 1500, 2500, self.position.liquidity)
        self.assertEqual(projected.amount0, 0)
        self.assertEqual(projected.value_in_quote, projected.amount1)

    def test_projection_below_range_is_all_base(self):
        projected = self.calculator.project_value(1000, 1500, 2500, self.position.liquidity)
        self.assertEqual(projected.amount1, 0)
        self.assertAlmostEqual(projected.value_in_quote, projected.amount0 * 1000)


class TestPriceForTargetSplit(unittest.TestCase):
    """Test the split to price inverse solver."""

    def setUp(self):
        self.calculator = LiquidityCalculator()

    def test_round_trip(self):
        ranges = [(1500, 2500), (0.5, 2.0), (1, 10000), (0.0001, 0.0003)]
        targets = [0, 1, 5, 25, 50, 70, 95, 99, 100]
        for lower, upper in ranges:
            for target in targets:
                with self.subTest(lower=lower, upper=upper, target=target):
                    price = self.calculator.price_for_target_split(target, lower, upper)
                    self.assertGreaterEqual(price, lower)
                    self.assertLessEqual(price, upper)
                    split = self.calculator.required_amounts_for_deposit(
                        price, lower, upper, 1000
                    ).split0_pct
                    self.assertAlmostEqual(split, target, delta=0.1)

    def test_higher_split_means_lower_price(self):
        p70 = self.calculator.price_for_target_split(70, 1500, 2500)
        p30 = self.calculator.price_for_target_split(30, 1500, 2500)
        self.assertLess(p70, p30)

    def test_more_iterations_are_at_least_as_precise(self):
        coarse = self.calculator.price_for_target_split(40, 1500, 2500, iterations=5)
        fine = self.calculator.price_for_target_split(40, 1500, 2500, iterations=40)

        def error(price):
            split = self.calculator.required_amounts_for_deposit(price, 1500, 2500, 1000).split0_pct
            return abs(split - 40)

        self.assertLessEqual(error(fine), error(coarse))
        self.assertLess(error(fine), 1e-6)

    def test_invalid_split_rejected(self):
        for target in (-0.1, 100.1, 150):
            with self.assertRaises(InvalidSplitTargetError):
                self.calculator.price_for_target_split(target, 1500, 2500)

    def test_invalid_range_rejected(self):
        with self.assertRaises(InvalidRangeError):
            self.calculator.price_for_target_split(50, 2500, 1500)
        with self.assertRaises(InvalidRangeError):
            self.calculator.price_for_target_split(50, 0, 1500)

    def test_invalid_iterations_rejected(self):
        with self.assertRaises(CLMathError):
            self.calculator.price_for_target_split(50, 1500, 2500, iterations=0)


class TestDeltaExposure(unittest.TestCase):
    """Test base asset exposure."""

    def setUp(self):
        self.calculator = LiquidityCalculator()
        self.liquidity = self.calculator.required_amounts_for_deposit(2000, 1500, 2500, 1000).liquidity

    def test_below_range_equals_full_token0(self):
        full, _ = self.calculator.amounts_for_liquidity(1500, 1500, 2500, self.liquidity)
        self.assertEqual(self.calculator.delta_exposure(1000, 1500, 2500, self.liquidity), full)
        self.assertEqual(self.calculator.delta_exposure(1500, 1500, 2500, self.liquidity), full)

    def test_above_range_is_zero(self):
        self.assertEqual(self.calculator.delta_exposure(2500, 1500, 2500, self.liquidity), 0)
        self.assertEqual(self.calculator.delta_exposure(4000, 1500, 2500, self.liquidity), 0)

    def test_in_range_matches_amount0(self):
        amount0, _ = self.calculator.amounts_for_liquidity(2100, 1500, 2500, self.liquidity)
        self.assertEqual(self.calculator.delta_exposure(2100, 1500, 2500, self.liquidity), amount0)

    def test_delta_decreases_with_price(self):
        deltas = [
            self.calculator.delta_exposure(p, 1500, 2500, self.liquidity)
            for p in (1400, 1600, 1800, 2000, 2200, 2400, 2600)
        ]
        self.assertEqual(deltas, sorted(deltas, reverse=True))


if __name__ == '__main__':
    unittest.main()
