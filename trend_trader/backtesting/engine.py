"""
Backtest simulator: replays closed bars through the same analysis, risk and decision
pipeline as live trading. Fills at the bar close with a proportional fee.

A real advisory call cannot be replayed against historical timestamps, so the
deterministic TechnicalProxy stands in for the external prediction.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

import pandas as pd

from trend_trader.analytics.metrics import PerformanceReport, compute_report
from trend_trader.core.state import TradingState
from trend_trader.core.types import Action, Fill, TradeRecord
from trend_trader.decision.engine import Decision, DecisionContext, DecisionEngine
from trend_trader.prediction.proxy import TechnicalProxy, TechnicalProxyPredictor
from trend_trader.risk.manager import RiskAssessor
from trend_trader.strategies.base import BaseStrategy
from trend_trader.strategies.trend_pullback import TrendPullbackStrategy
from trend_trader.utils.timeframes import periods_per_year

if TYPE_CHECKING:
    from trend_trader.core.config import Config

logger = logging.getLogger("trend_trader.backtest")


@dataclass
class Portfolio:
    """Virtual spot account for one backtest."""
    cash_balance: float
    asset_balance: float = 0.0
    total_value: float = 0.0
    daily_trade_count: int = 0
    last_trade_date: Optional[date] = None

    def sync(self, state: TradingState, price: float) -> None:
        """Mirror the trading state's cash and position, marked at `price`."""
        self.cash_balance = state.balance
        self.asset_balance = state.position.amount if state.position else 0.0
        self.total_value = self.cash_balance + self.asset_balance * price
        self.daily_trade_count = state.daily_trade_count

    def to_dict(self) -> dict:
        return {
            "cash_balance": self.cash_balance,
            "asset_balance": self.asset_balance,
            "total_value": self.total_value,
            "daily_trade_count": self.daily_trade_count,
            "last_trade_date": self.last_trade_date.isoformat() if self.last_trade_date else None,
        }


@dataclass
class BacktestResult:
    """Backtest output: trades, equity curve, final ledger and performance."""
    trades: List[TradeRecord] = field(default_factory=list)
    equity_curve: List[float] = field(default_factory=list)
    portfolio: Optional[Portfolio] = None
    state: Optional[TradingState] = None
    report: Optional[PerformanceReport] = None
    bars: int = 0
    evaluated_bars: int = 0
    first_bar: Optional[datetime] = None
    last_bar: Optional[datetime] = None


class BacktestSimulator:
    """
    Runs the full pipeline bar by bar. Each evaluation sees only the trailing
    `window_bars` bars ending at the current (closed) bar.
    """

    def __init__(
        self,
        strategy: BaseStrategy,
        risk_assessor: RiskAssessor,
        decision_engine: DecisionEngine,
        proxy: Optional[TechnicalProxy] = None,
        initial_capital: float = 1000.0,
        fee_rate: float = 0.001,
        warmup_bars: int = 60,
        window_bars: int = 200,
        symbol: str = "BTCUSDT",
        annualization: float = 365 * 24,
    ):
        self.strategy = strategy
        self.risk_assessor = risk_assessor
        self.decision_engine = decision_engine
        self.proxy = proxy or TechnicalProxyPredictor()
        self.initial_capital = initial_capital
        self.fee_rate = fee_rate
        self.warmup_bars = warmup_bars
        self.window_bars = window_bars
        self.symbol = symbol
        self.annualization = annualization

    @classmethod
    def from_config(cls, config: "Config") -> "BacktestSimulator":
        return cls(
            strategy=TrendPullbackStrategy(warmup_bars=config.warmup_bars),
            risk_assessor=RiskAssessor(
                max_daily_trades=config.max_daily_trades,
                trade_amount=config.trade_amount,
                max_position_size=config.max_position_size,
                stop_loss_pct=config.stop_loss_pct,
                take_profit_pct=config.take_profit_pct,
            ),
            decision_engine=DecisionEngine.from_config(config),
            initial_capital=config.backtest_initial_capital,
            fee_rate=config.fee_rate,
            warmup_bars=config.warmup_bars,
            window_bars=config.window_bars,
            symbol=config.symbol,
            annualization=periods_per_year(config.timeframe),
        )

    def run(self, df: pd.DataFrame) -> BacktestResult:
        """Run on an OHLCV DataFrame (columns: time, open, high, low, close, volume), oldest first."""
        df = df.reset_index(drop=True)
        state = TradingState(symbol=self.symbol, balance=self.initial_capital, start_balance=self.initial_capital)
        portfolio = Portfolio(cash_balance=self.initial_capital, total_value=self.initial_capital)
        result = BacktestResult(portfolio=portfolio, state=state, bars=len(df))
        if len(df) == 0:
            result.report = compute_report([], [], self.initial_capital, self.initial_capital, self.annualization)
            return result
        result.first_bar = pd.Timestamp(df["time"].iloc[0]).to_pydatetime()
        result.last_bar = pd.Timestamp(df["time"].iloc[-1]).to_pydatetime()

        for i in range(self.warmup_bars, len(df)):
            now = pd.Timestamp(df["time"].iloc[i]).to_pydatetime()
            price = float(df["close"].iloc[i])
            state.roll_calendar(now)
            portfolio.sync(state, price)

            window = df.iloc[max(0, i + 1 - self.window_bars): i + 1]
            analysis = self.strategy.analyze(window)
            prediction = self.proxy.predict(analysis.indicators, now)
            risk = self.risk_assessor.assess(
                window, analysis.indicators, analysis.trend.direction, prediction, state, price, now
            )
            ctx = DecisionContext(
                price=price, now=now, analysis=analysis, risk=risk,
                prediction=prediction, balance=portfolio.total_value,
            )
            decision = self.decision_engine.decide(state, ctx)
            if decision.is_trade:
                record = self._execute(state, decision, price, now, i)
                if record is not None:
                    result.trades.append(record)
                    portfolio.last_trade_date = now.date()

            portfolio.sync(state, price)
            result.equity_curve.append(portfolio.total_value)
            result.evaluated_bars += 1

        result.report = compute_report(
            result.trades,
            result.equity_curve,
            self.initial_capital,
            portfolio.total_value,
            self.annualization,
        )
        logger.info(
            "Backtest done: %d bars, %d trades, final value %.2f, ROI %.2f%%",
            result.evaluated_bars, len(result.trades), portfolio.total_value, result.report.roi,
        )
        return result

    def _execute(
        self,
        state: TradingState,
        decision: Decision,
        price: float,
        now: datetime,
        bar_index: int,
    ) -> Optional[TradeRecord]:
        amount = decision.amount
        if decision.action == Action.SELL and state.position is not None:
            amount = state.position.amount
        notional = amount * price
        fee = notional * self.fee_rate
        if decision.action == Action.BUY and notional + fee > state.balance:
            self.decision_engine.on_rejected(
                state, decision, f"insufficient cash: need {notional + fee:.2f}, have {state.balance:.2f}"
            )
            return None
        fill = Fill(amount=amount, price=price, fee=fee, id=f"bt-{bar_index}")
        return self.decision_engine.on_fill(state, decision, fill, now)
