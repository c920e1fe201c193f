"""Portfolio state and history derived by replaying the transaction ledger."""

import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

import pandas as pd

from ..core.interfaces import Asset, AssetOverride, Transaction, TransactionType
from .earnings import price_of

# Quantities below this are rounding residue
DUST_QUANTITY = 1e-8
MIN_HELD_QUANTITY = 1e-6
MIN_INVESTED_FOR_PNL = 0.01
FIAT_CURRENCIES = ('USD',)
LP_MOVE_NOTE = 'Moved to LP'

logger = logging.getLogger(__name__)


def _normalize(symbol: str) -> str:
    return symbol.strip().upper()


def _average_cost(asset: Asset) -> float:
    return asset.total_invested / asset.quantity if asset.quantity > 0 else 0.0


def _apply_funding(assets: Dict[str, Asset], asset: Asset, tx: Transaction):
    asset.quantity += tx.amount
    asset.total_invested += tx.amount * (tx.price_per_unit or 0)
    if tx.lp_range:
        asset.lp_range = tx.lp_range
    if tx.monitor_symbol:
        asset.monitor_symbol = tx.monitor_symbol

    # Paid with another held asset: release it at its average cost
    if (tx.payment_currency and tx.payment_amount
            and _normalize(tx.payment_currency) not in FIAT_CURRENCIES):
        payment_symbol = _normalize(tx.payment_currency)
        payment = assets.setdefault(payment_symbol, Asset(symbol=payment_symbol))
        payment.total_invested -= tx.payment_amount * _average_cost(payment)
        payment.quantity -= tx.payment_amount


def _apply_withdrawal(asset: Asset, tx: Transaction):
    asset.total_invested -= tx.amount * _average_cost(asset)
    asset.quantity -= tx.amount

    if asset.quantity <= DUST_QUANTITY:
        asset.quantity = 0.0
        asset.total_invested = 0.0
    if asset.total_invested < DUST_QUANTITY:
        asset.total_invested = 0.0

    if tx.notes and LP_MOVE_NOTE in tx.notes:
        asset.locked_in_lp_quantity += tx.amount


def _monitor_price(monitor_symbol: str, prices: Dict[str, float]) -> float:
    if '/' in monitor_symbol:
        base, quote = monitor_symbol.split('/', 1)
        quote_price = prices.get(quote, 0.0)
        return prices.get(base, 0.0) / quote_price if quote_price > 0 else 0.0
    return prices.get(monitor_symbol, 0.0)


def calculate_assets(
    transactions: Sequence[Transaction],
    prices: Dict[str, float],
    overrides: Optional[Dict[str, AssetOverride]] = None
) -> List[Asset]:
    """
    Replay the ledger into current holdings valued at ``prices``.

    Transfers move nothing. BUY/SELL are booked like DEPOSIT/WITHDRAWAL.
    LP-like holdings without a price are carried at cost.
    """
    overrides = overrides or {}
    prices = prices or {}
    assets: Dict[str, Asset] = {}

    for tx in sorted(transactions, key=lambda t: t.date):
        if tx.type == TransactionType.TRANSFER:
            continue

        symbol = _normalize(tx.asset_symbol)
        asset = assets.setdefault(symbol, Asset(symbol=symbol))

        if tx.type.is_funding:
            _apply_funding(assets, asset, tx)
        elif tx.type == TransactionType.INTEREST:
            asset.quantity += tx.amount
            asset.earned_quantity += tx.amount
        elif tx.type in (TransactionType.WITHDRAWAL, TransactionType.SELL):
            _apply_withdrawal(asset, tx)

        if asset.quantity > 0:
            asset.average_buy_price = asset.total_invested / asset.quantity

        override = overrides.get(asset.symbol)
        if override:
            if override.avg_buy_price is not None:
                asset.average_buy_price = override.avg_buy_price
                asset.total_invested = asset.quantity * asset.average_buy_price
            if override.reward_tokens:
                asset.reward_tokens = list(override.reward_tokens)

    for asset in assets.values():
        asset.current_price = prices.get(asset.symbol, 0.0)

        if asset.lp_range and asset.monitor_symbol:
            asset.monitor_price = _monitor_price(asset.monitor_symbol, prices)
            if asset.monitor_price > 0:
                asset.in_range = asset.lp_range.contains(asset.monitor_price)

        if asset.current_price == 0 and (asset.symbol.startswith('LP') or asset.lp_range):
            asset.current_value = asset.total_invested
        else:
            asset.current_value = asset.quantity * asset.current_price

        asset.unrealized_pnl = asset.current_value - asset.total_invested
        asset.pnl_percentage = (
            asset.unrealized_pnl / asset.total_invested * 100
            if asset.total_invested >= MIN_INVESTED_FOR_PNL else 0.0
        )

    held = [a for a in assets.values() if a.quantity > MIN_HELD_QUANTITY]
    logger.debug(f"Replayed {len(transactions)} transactions into {len(held)} assets")
    return held


def calculate_portfolio_history(
    transactions: Sequence[Transaction],
    prices: Dict[str, float],
    today: Optional[date] = None
) -> pd.DataFrame:
    """
    Invested capital and accumulated earnings per ledger date.

    Returns a DataFrame indexed by date with columns ``invested``
    (cumulative DEPOSIT cost net of WITHDRAWAL) and ``earnings``
    (cumulative INTEREST quantities valued at current prices).
    """
    columns = ['invested', 'earnings']
    if not transactions:
        return pd.DataFrame(columns=columns, index=pd.Index([], name='date'), dtype=float)

    today = today or datetime.now(timezone.utc).date()
    frame = pd.DataFrame([
        {
            'date': tx.date.date(),
            'type': tx.type.value,
            'symbol': tx.asset_symbol,
            'amount': tx.amount,
            'price_per_unit': tx.price_per_unit or 0.0,
        }
        for tx in transactions
    ])

    dates = sorted(set(frame['date']) | {today})
    index = pd.Index(dates, name='date')

    direction = frame['type'].map({'DEPOSIT': 1.0, 'WITHDRAWAL': -1.0}).fillna(0.0)
    frame['invested_delta'] = frame['amount'] * frame['price_per_unit'] * direction
    invested = (
        frame.groupby('date')['invested_delta'].sum()
        .reindex(index, fill_value=0.0)
        .cumsum()
    )

    interest = frame[frame['type'] == TransactionType.INTEREST.value]
    if interest.empty:
        earnings = pd.Series(0.0, index=index)
    else:
        quantities = (
            interest.pivot_table(index='date', columns='symbol', values='amount', aggfunc='sum')
            .reindex(index)
            .fillna(0.0)
            .cumsum()
        )
        valuation = pd.Series({s: price_of(prices, s) for s in quantities.columns})
        earnings = (quantities * valuation).sum(axis=1)

    return pd.DataFrame({'invested': invested, 'earnings': earnings}, index=index)
