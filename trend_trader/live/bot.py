"""
Live trading cycle: market data -> analysis -> optional prediction -> risk -> decision
-> (optional) execution -> persistence. One call to run_cycle is one evaluation.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from trend_trader.core.state import TradingState
from trend_trader.core.types import ExternalPrediction, MarketSnapshot, TradeRecord
from trend_trader.decision.engine import Decision, DecisionContext, DecisionEngine
from trend_trader.execution.base import ExecutionClient, ExecutionError
from trend_trader.persistence.store import JsonStore
from trend_trader.prediction.base import ProviderChain
from trend_trader.risk.manager import RiskAssessor
from trend_trader.strategies.base import BaseStrategy
from trend_trader.strategies.trend_pullback import MarketAnalysis
from trend_trader.utils.exchange_filters import split_symbol
from trend_trader.utils.timeouts import CallTimeout, call_with_timeout

if TYPE_CHECKING:
    from trend_trader.core.config import Config

logger = logging.getLogger("trend_trader.live")

SNAPSHOT_OHLCV_BARS = 50


@dataclass
class CycleResult:
    decision: Decision
    trade: Optional[TradeRecord] = None
    prediction: Optional[ExternalPrediction] = None
    error: Optional[str] = None
    reconciled: Optional[TradeRecord] = None


def market_snapshot(symbol: str, analysis: MarketAnalysis, df, now: datetime) -> MarketSnapshot:
    ind = analysis.indicators
    tail = df.iloc[-SNAPSHOT_OHLCV_BARS:]
    ohlcv = [
        [int(r.time.timestamp() * 1000), float(r.open), float(r.high), float(r.low), float(r.close), float(r.volume)]
        for r in tail.itertuples(index=False)
    ]
    return MarketSnapshot(
        symbol=symbol,
        price=ind.price,
        volume=ind.volume,
        timestamp=now,
        rsi=ind.rsi,
        macd=ind.macd.line,
        sma20=ind.sma20,
        sma50=ind.sma50,
        ohlcv=ohlcv,
    )


class TradingBot:
    """Owns the TradingState for one symbol and drives it one cycle at a time."""

    def __init__(
        self,
        config: "Config",
        client: ExecutionClient,
        strategy: BaseStrategy,
        risk_assessor: RiskAssessor,
        engine: DecisionEngine,
        store: JsonStore,
        chain: Optional[ProviderChain] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.config = config
        self.client = client
        self.strategy = strategy
        self.risk_assessor = risk_assessor
        self.engine = engine
        self.store = store
        self.chain = chain
        self._clock = clock
        self.state = TradingState(symbol=config.symbol)

    def restore(self) -> TradingState:
        """Load the last snapshot once at startup; otherwise start from the exchange balance."""
        snapshot = self.store.load_snapshot()
        if snapshot is not None and snapshot.symbol == self.config.symbol:
            self.state = snapshot
            logger.info(
                "Restored state: phase=%s balance=%.2f trades=%d",
                snapshot.phase.value, snapshot.balance, snapshot.total_trades,
            )
            return self.state
        quote = split_symbol(self.config.symbol)[1] or "USDT"
        try:
            balance = call_with_timeout(self.client.get_balance, self.config.request_timeout_s, quote)
        except (ExecutionError, CallTimeout) as e:
            logger.warning("Could not read %s balance, starting at 0: %s", quote, e)
            balance = 0.0
        self.state = TradingState(symbol=self.config.symbol, balance=balance, start_balance=balance)
        logger.info("Fresh state for %s with %.2f %s", self.config.symbol, balance, quote)
        return self.state

    def run_cycle(self, now: Optional[datetime] = None) -> CycleResult:
        now = now or self._clock()
        state = self.state
        if state.roll_calendar(now):
            logger.info("Calendar rolled: daily count reset, weekly P&L %.2f", state.weekly_pnl)
        reconciled = self._reconcile(now)

        try:
            df = call_with_timeout(
                self.client.get_klines, self.config.request_timeout_s,
                self.config.symbol, self.config.timeframe, self.config.window_bars,
            )
        except Exception as e:
            logger.warning("Market data unavailable: %s", e)
            decision = Decision.hold(0.0, [f"Market data unavailable: {e}"])
            self._persist(decision, None)
            return CycleResult(decision=decision, error=str(e), reconciled=reconciled)
        if df is None or len(df) == 0:
            decision = Decision.hold(0.0, ["Market data unavailable: no bars"])
            self._persist(decision, None)
            return CycleResult(decision=decision, error="no bars", reconciled=reconciled)

        analysis = self.strategy.analyze(df)
        price = analysis.price
        prediction = self._predict(analysis, df, now)
        risk = self.risk_assessor.assess(
            df, analysis.indicators, analysis.trend.direction, prediction, state, price, now
        )
        decision = self.engine.decide(
            state,
            DecisionContext(
                price=price, now=now, analysis=analysis, risk=risk, prediction=prediction,
                balance=state.equity(price),
            ),
        )

        trade = None
        error = None
        if decision.is_trade:
            if not self.config.trading_enabled:
                self.engine.on_rejected(state, decision, "trading disabled (dry run)")
            else:
                trade, error = self._execute(decision, price, now)

        if prediction is not None:
            self.store.append_prediction(prediction)
        self._persist(decision, risk.to_dict())
        return CycleResult(
            decision=decision, trade=trade, prediction=prediction, error=error, reconciled=reconciled
        )

    def _base_balance(self) -> float:
        base = split_symbol(self.config.symbol)[0]
        return call_with_timeout(self.client.get_balance, self.config.request_timeout_s, base)

    def _execute(self, decision: Decision, price: float, now: datetime):
        state = self.state
        try:
            base_before = self._base_balance()
        except (ExecutionError, CallTimeout) as e:
            self.engine.on_rejected(state, decision, f"base balance unavailable: {e}")
            return None, str(e)
        try:
            fill = call_with_timeout(
                self.client.place_order, self.config.request_timeout_s,
                self.config.symbol, decision.action, decision.amount, price,
            )
        except CallTimeout as e:
            self.engine.on_timeout(state, decision, base_before, now)
            return None, str(e)
        except ExecutionError as e:
            self.engine.on_rejected(state, decision, str(e))
            return None, str(e)
        trade = self.engine.on_fill(state, decision, fill, now)
        self.store.append_trade(trade)
        return trade, None

    def _reconcile(self, now: datetime) -> Optional[TradeRecord]:
        """Settle an order left pending by a timed-out call; stays pending if the balance is unreadable."""
        if self.state.pending_order is None:
            return None
        try:
            held = self._base_balance()
        except (ExecutionError, CallTimeout) as e:
            logger.warning("Cannot reconcile pending order yet: %s", e)
            return None
        trade = self.engine.reconcile(self.state, held, self.config.fee_rate, now)
        if trade is not None:
            self.store.append_trade(trade)
        return trade

    def _predict(self, analysis: MarketAnalysis, df, now: datetime) -> Optional[ExternalPrediction]:
        if self.chain is None or not self.config.ai_advisor_enabled:
            return None
        snapshot = market_snapshot(self.config.symbol, analysis, df, now)
        try:
            return call_with_timeout(self.chain.predict, self.config.advisory_timeout_s, snapshot)
        except CallTimeout:
            logger.warning("Prediction timed out, continuing technical-only")
            return None
        except Exception as e:
            logger.exception("Prediction failed, continuing technical-only: %s", e)
            return None

    def _persist(self, decision: Decision, risk: Optional[dict]) -> None:
        extra = {
            "last_decision": decision.to_dict(),
            "risk": risk,
            "providers": self.chain.health() if self.chain is not None else [],
        }
        self.store.save_snapshot(self.state, extra)
