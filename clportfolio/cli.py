"""Command-line interface for CL position planning and LP earnings."""

import logging
from pathlib import Path
from typing import Optional

import click
import pandas as pd
from dotenv import load_dotenv

from .config import ConfigManager
from .core.exceptions import CLMathError, PortfolioError
from .data import JsonLedgerStore, JsonPriceStore
from .uniswap import LiquidityCalculator
from .analysis import (
    PositionAnalyzer, EarningsCalculator, calculate_assets, calculate_portfolio_history,
)


@click.group()
@click.option('--config', '-c', default='config.yaml', help='Path to configuration file')
@click.option('--log-level', '-l', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level')
@click.pass_context
def cli(ctx, config: str, log_level: str):
    """Concentrated liquidity planner and LP earnings tracker."""
    load_dotenv()

    # Setup context
    ctx.ensure_object(dict)
    ctx.obj['config_manager'] = ConfigManager(config)

    # Setup basic logging (will be overridden by config)
    logging.basicConfig(level=getattr(logging, log_level))


def _load_config(ctx):
    try:
        return ctx.obj['config_manager'].load(allow_missing=True)
    except PortfolioError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        ctx.exit(1)


def _stores(config):
    return (
        JsonLedgerStore(config.storage.ledger_path),
        JsonPriceStore(config.storage.prices_path, ttl=config.storage.price_ttl)
    )


def _output_dir(config, override: Optional[str]) -> Path:
    output_dir = Path(override or config.output.directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def _fmt_optional_pct(value: Optional[float]) -> str:
    return f"{value:,.2f}%" if value is not None else "n/a"


@cli.command()
@click.option('--entry', '-e', type=float, required=True, help='Entry price (quote per base)')
@click.option('--target', '-t', type=float, help='Target price (default: entry * target_factor)')
@click.option('--lower', type=float, help='Range lower bound (default: entry * range_lower_factor)')
@click.option('--upper', type=float, help='Range upper bound (default: entry * range_upper_factor)')
@click.option('--deposit', '-d', type=float, help='Deposit value in quote units')
@click.option('--fee-apr', type=float, help='Expected fee APR in percent')
@click.option('--duration', type=float, help='Holding period in days')
@click.option('--plot/--no-plot', default=False, help='Save a value/IL chart over a price grid')
@click.option('--output-dir', '-o', help='Override output directory')
@click.pass_context
def simulate(ctx, entry: float, target: Optional[float], lower: Optional[float],
             upper: Optional[float], deposit: Optional[float], fee_apr: Optional[float],
             duration: Optional[float], plot: bool, output_dir: Optional[str]):
    """Project a planned position: allocation, IL, fees and PnL."""
    config = _load_config(ctx)
    sim = config.simulator

    target = target if target is not None else entry * sim.target_factor
    lower = lower if lower is not None else entry * sim.range_lower_factor
    upper = upper if upper is not None else entry * sim.range_upper_factor
    deposit = deposit if deposit is not None else sim.deposit_value

    analyzer = PositionAnalyzer()
    try:
        result = analyzer.simulate(
            entry, target, lower, upper, deposit,
            fee_apr=fee_apr if fee_apr is not None else sim.fee_apr,
            duration_days=duration if duration is not None else sim.duration_days
        )
    except CLMathError as e:
        click.echo(f"❌ {e}", err=True)
        ctx.exit(1)

    _print_simulation(result, entry, target, lower, upper, deposit)

    if plot:
        from .visualization import Visualizer

        scenarios = analyzer.price_scenarios(
            entry, lower, upper, deposit, points=sim.scenario_points
        )
        path = _output_dir(config, output_dir) / "position_value.png"
        Visualizer().plot_position_value_chart(scenarios, entry, lower, upper, str(path))
        click.echo(f"\nChart saved to {path}")


@cli.command('split-price')
@click.argument('split0', type=float)
@click.option('--lower', type=float, required=True, help='Range lower bound')
@click.option('--upper', type=float, required=True, help='Range upper bound')
@click.option('--iterations', '-i', type=int, help='Bisection steps')
@click.pass_context
def split_price(ctx, split0: float, lower: float, upper: float, iterations: Optional[int]):
    """Find the entry price giving SPLIT0 percent of value in token0."""
    config = _load_config(ctx)
    calculator = LiquidityCalculator()
    try:
        price = calculator.price_for_target_split(
            split0, lower, upper,
            iterations=iterations if iterations is not None else config.simulator.solver_iterations
        )
    except CLMathError as e:
        click.echo(f"❌ {e}", err=True)
        ctx.exit(1)

    allocation = calculator.required_amounts_for_deposit(price, lower, upper, config.simulator.deposit_value)
    click.echo(f"Price for {split0:.2f}% token0: {price:,.6f}")
    click.echo(f"  Achieved split: {allocation.split0_pct:.2f}% / {allocation.split1_pct:.2f}%")


@cli.command()
@click.option('--price', '-p', type=float, required=True, help='Price to measure exposure at')
@click.option('--lower', type=float, required=True, help='Range lower bound')
@click.option('--upper', type=float, required=True, help='Range upper bound')
@click.option('--entry', '-e', type=float, help='Entry price the deposit was sized at (default: price)')
@click.option('--deposit', '-d', type=float, help='Deposit value in quote units')
@click.pass_context
def delta(ctx, price: float, lower: float, upper: float, entry: Optional[float],
          deposit: Optional[float]):
    """Show the base-asset exposure a spot hedge would need to offset."""
    config = _load_config(ctx)
    calculator = LiquidityCalculator()
    try:
        position = calculator.required_amounts_for_deposit(
            entry if entry is not None else price, lower, upper,
            deposit if deposit is not None else config.simulator.deposit_value
        )
        exposure = calculator.delta_exposure(price, lower, upper, position.liquidity)
    except CLMathError as e:
        click.echo(f"❌ {e}", err=True)
        ctx.exit(1)

    click.echo(f"Liquidity: {position.liquidity:,.6f}")
    click.echo(f"Delta (token0 units): {exposure:,.6f}")
    click.echo(f"Hedge notional: ${exposure * price:,.2f}")


@cli.command()
@click.pass_context
def assets(ctx):
    """List holdings derived from the ledger."""
    config = _load_config(ctx)
    ledger, price_store = _stores(config)

    holdings = calculate_assets(ledger.load_transactions(), price_store.get_prices(), config.assets)
    if not holdings:
        click.echo("No holdings in ledger")
        return

    click.echo(f"{'Symbol':<16}{'Quantity':>16}{'Invested':>14}{'Value':>14}{'PnL %':>10}  Range")
    for asset in holdings:
        if asset.lp_range is None:
            status = ""
        elif asset.in_range is None:
            status = "unmonitored"
        else:
            status = "in range" if asset.in_range else "OUT OF RANGE"
        click.echo(f"{asset.symbol:<16}{asset.quantity:>16,.6f}{asset.total_invested:>14,.2f}"
                   f"{asset.current_value:>14,.2f}{asset.pnl_percentage:>9.2f}%  {status}")


@cli.command()
@click.option('--csv', 'csv_path', help='Export per-source earnings to CSV')
@click.option('--plot/--no-plot', default=False, help='Save an earnings-by-token chart')
@click.option('--output-dir', '-o', help='Override output directory')
@click.pass_context
def earnings(ctx, csv_path: Optional[str], plot: bool, output_dir: Optional[str]):
    """Show realized LP earnings with ROI and APR per source."""
    config = _load_config(ctx)
    ledger, price_store = _stores(config)

    transactions = ledger.load_transactions()
    prices = price_store.get_prices()
    holdings = calculate_assets(transactions, prices, config.assets)
    summary = EarningsCalculator().summarize(holdings, transactions, prices)

    if not summary.enhanced:
        click.echo("No LP earnings recorded")
        return

    click.echo("\n" + "=" * 60)
    click.echo("EARNINGS BY SOURCE")
    click.echo("=" * 60)
    for record in summary.enhanced:
        tokens = ", ".join(f"{qty:,.4f} {token}" for token, qty in record.tokens.items())
        click.echo(f"\n{record.source}")
        click.echo(f"  Earned: {tokens}")
        click.echo(f"  Value: ${record.total_value_usd:,.2f}")
        click.echo(f"  Invested: ${record.total_invested:,.2f}")
        click.echo(f"  ROI: {_fmt_optional_pct(record.roi)} | APR: {_fmt_optional_pct(record.apr)} "
                   f"| Days active: {record.days_active}")

    click.echo("\nTotals by token:")
    for total in summary.totals_by_token:
        click.echo(f"  {total.token:<10}{total.quantity:>16,.4f}  ${total.value:,.2f}")
    click.echo(f"\nTotal earnings: ${summary.total_usd:,.2f}")

    if csv_path:
        frame = pd.DataFrame([
            {
                'source': r.source,
                'total_value_usd': r.total_value_usd,
                'total_invested': r.total_invested,
                'roi': r.roi,
                'apr': r.apr,
                'days_active': r.days_active,
            }
            for r in summary.enhanced
        ])
        frame.to_csv(csv_path, index=False)
        click.echo(f"\nSaved to {csv_path}")

    if plot:
        from .visualization import Visualizer

        path = _output_dir(config, output_dir) / "earnings_by_token.png"
        Visualizer().plot_earnings_by_token(summary.totals_by_token, str(path))
        click.echo(f"Chart saved to {path}")


@cli.command()
@click.pass_context
def fees(ctx):
    """Show how far claimed fees have paid back each LP position."""
    config = _load_config(ctx)
    ledger, price_store = _stores(config)

    transactions = ledger.load_transactions()
    prices = price_store.get_prices()
    holdings = calculate_assets(transactions, prices, config.assets)
    report = EarningsCalculator().lp_fee_recovery(holdings, transactions, prices)

    if not report.positions:
        click.echo("No LP positions in ledger")
        return

    click.echo(f"{'Position':<16}{'Principal':>14}{'Claimed':>14}{'Recovered':>11}{'Net':>14}")
    for position in report.positions:
        marker = "  free-rolling" if position.is_free_rolling else ""
        click.echo(f"{position.symbol:<16}{position.principal:>14,.2f}{position.claimed_usd:>14,.2f}"
                   f"{position.recovery_percent:>10.2f}%{position.net_position:>+14,.2f}{marker}")

    click.echo(f"\nTotal principal: ${report.total_principal:,.2f}")
    click.echo(f"Total claimed: ${report.total_claimed:,.2f}")
    click.echo(f"Net position: ${report.total_net:+,.2f}")


@cli.command()
@click.option('--csv', 'csv_path', help='Export history to CSV')
@click.pass_context
def history(ctx, csv_path: Optional[str]):
    """Show invested capital and accumulated earnings over time."""
    config = _load_config(ctx)
    ledger, price_store = _stores(config)

    frame = calculate_portfolio_history(ledger.load_transactions(), price_store.get_prices())
    if frame.empty:
        click.echo("No transactions in ledger")
        return

    click.echo(frame.to_string(float_format=lambda v: f"{v:,.2f}"))
    if csv_path:
        frame.to_csv(csv_path)
        click.echo(f"\nSaved to {csv_path}")


@cli.command('validate-config')
@click.pass_context
def validate_config(ctx):
    """Validate configuration file."""
    config_manager = ctx.obj['config_manager']

    try:
        config = config_manager.load()
        click.echo("✅ Configuration is valid")

        # Show summary
        click.echo(f"\nConfiguration summary:")
        click.echo(f"  Ledger: {config.storage.ledger_path}")
        click.echo(f"  Prices: {config.storage.prices_path} (TTL {config.storage.price_ttl}s)")
        click.echo(f"  Asset overrides: {len(config.assets)}")
        click.echo(f"  Output directory: {config.output.directory}")

    except (PortfolioError, FileNotFoundError) as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        ctx.exit(1)


def _print_simulation(result, entry: float, target: float, lower: float, upper: float,
                      deposit: float):
    """Print simulation results."""
    initial = result.initial
    valuation = result.valuation

    click.echo("\n" + "=" * 60)
    click.echo("CL POSITION SIMULATION")
    click.echo("=" * 60)
    click.echo(f"\nRange: {lower:,.4f} - {upper:,.4f} | Entry: {entry:,.4f}")
    click.echo(f"Deposit: {deposit:,.2f}")

    click.echo("\nEntry allocation:")
    click.echo(f"  Token0: {initial.amount0:,.6f} ({initial.split0_pct:.2f}%)")
    click.echo(f"  Token1: {initial.amount1:,.2f} ({initial.split1_pct:.2f}%)")
    click.echo(f"  Liquidity: {initial.liquidity:,.4f}")

    click.echo(f"\nAt target {target:,.4f} ({result.target_change_pct:+.2f}%):")
    click.echo(f"  Position: {valuation.projection.amount0:,.6f} token0 + "
               f"{valuation.projection.amount1:,.2f} token1")
    click.echo(f"  LP value: {valuation.lp_value:,.2f}")
    click.echo(f"  Hold value: {valuation.held_value:,.2f}")
    click.echo(f"  Impermanent loss: {valuation.il_usd:,.2f} ({valuation.il_percentage:.2f}%)")

    click.echo(f"\nEstimated fees: {result.estimated_fees:,.2f}")
    click.echo(f"Net PnL: {result.net_pnl:+,.2f}")


if __name__ == '__main__':
    cli()
