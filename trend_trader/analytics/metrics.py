"""
Performance metrics for a backtest: win rate, average win/loss, profit factor,
ROI, max drawdown and Sharpe ratio over the per-bar equity curve.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import List, Sequence

import numpy as np

from trend_trader.core.types import Action, TradeRecord


@dataclass
class PerformanceReport:
    """Aggregate backtest performance. win_rate and roi are percentages."""
    total_trades: int
    closed_trades: int
    win_count: int
    loss_count: int
    win_rate: float
    avg_profit: float
    avg_loss: float
    profit_factor: float
    total_profit: float
    roi: float
    max_drawdown_pct: float
    sharpe_ratio: float
    initial_value: float
    final_value: float

    def to_dict(self) -> dict:
        return asdict(self)


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sharpe. returns = list of period returns."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    excess = arr - risk_free_rate / periods_per_year
    if excess.std() <= 1e-12:
        return 0.0
    return float(np.sqrt(periods_per_year) * excess.mean() / excess.std())


def max_drawdown(equity: Sequence[float]) -> float:
    """Largest peak-to-trough decline of an equity curve, as a positive percent."""
    if len(equity) == 0:
        return 0.0
    arr = np.asarray(equity, dtype=float)
    peak = np.maximum.accumulate(arr)
    dd = (peak - arr) / np.where(peak != 0, peak, 1)
    return float(np.max(dd)) * 100.0


def equity_returns(equity: Sequence[float]) -> List[float]:
    arr = np.asarray(equity, dtype=float)
    if arr.size < 2:
        return []
    prev = np.where(arr[:-1] != 0, arr[:-1], 1)
    return (np.diff(arr) / prev).tolist()


def win_rate(pnls: Sequence[float]) -> float:
    """Percent of closed trades with positive P&L."""
    if len(pnls) == 0:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls) * 100.0


def profit_factor(avg_profit: float, avg_loss: float) -> float:
    """
    Average win / average loss (positive magnitude). With no losses this is
    inf when anything was won and 0.0 when nothing was.
    """
    if avg_loss <= 0:
        return float("inf") if avg_profit > 0 else 0.0
    return avg_profit / avg_loss


def compute_report(
    trades: Sequence[TradeRecord],
    equity: Sequence[float],
    initial_value: float,
    final_value: float,
    periods_per_year: float = 252.0,
) -> PerformanceReport:
    """
    Closed trades are the SELL records (each closes the position opened by the previous BUY).
    total_profit = final_value - initial_value, so an open position counts at its mark.
    """
    closed = [t.pnl for t in trades if t.side == Action.SELL]
    wins = [p for p in closed if p > 0]
    losses = [-p for p in closed if p <= 0]
    avg_profit = sum(wins) / len(wins) if wins else 0.0
    avg_loss = sum(losses) / len(losses) if losses else 0.0
    total_profit = final_value - initial_value
    return PerformanceReport(
        total_trades=len(trades),
        closed_trades=len(closed),
        win_count=len(wins),
        loss_count=len(losses),
        win_rate=win_rate(closed),
        avg_profit=avg_profit,
        avg_loss=avg_loss,
        profit_factor=profit_factor(avg_profit, avg_loss),
        total_profit=total_profit,
        roi=total_profit / initial_value * 100.0 if initial_value > 0 else 0.0,
        max_drawdown_pct=max_drawdown(equity),
        sharpe_ratio=sharpe_ratio(equity_returns(equity), periods_per_year=periods_per_year),
        initial_value=initial_value,
        final_value=final_value,
    )
