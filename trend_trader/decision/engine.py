"""
Decision engine: guardrails + position state machine (FLAT -> ENTERING -> OPEN -> EXITING -> FLAT).

Spot only: BUY opens the single long Position from FLAT, SELL closes it from OPEN.
All state lives in the TradingState passed in; the engine holds configuration only.
An order whose call timed out keeps the pending phase until `reconcile` settles it.

Guardrail order (first match wins):
  pending order / weekly loss breaker / protective exits (stop-loss, take-profit) /
  insufficient data / daily trade cap / HIGH risk / trend-only guard / entry condition /
  confirmation / signal-flip exit.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from trend_trader.core.state import TradingState
from trend_trader.core.types import (
    Action,
    ExternalPrediction,
    Fill,
    PendingOrder,
    Position,
    PositionPhase,
    RiskLevel,
    TradeRecord,
    TrendDirection,
)
from trend_trader.risk.manager import RiskAssessment, safe_position_value, within_weekly_loss_limit
from trend_trader.strategies.trend_pullback import MarketAnalysis

if TYPE_CHECKING:
    from trend_trader.core.config import Config

logger = logging.getLogger("trend_trader.decision")


@dataclass
class Decision:
    """Output of one evaluation. amount is in base units; price is the reference price."""
    action: Action
    confidence: float
    amount: float = 0.0
    price: float = 0.0
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    reasons: List[str] = field(default_factory=list)

    @property
    def reasoning(self) -> str:
        return " | ".join(self.reasons)

    @property
    def is_trade(self) -> bool:
        return self.action != Action.HOLD

    @classmethod
    def hold(cls, price: float, reasons: List[str], confidence: float = 0.0) -> "Decision":
        return cls(action=Action.HOLD, confidence=confidence, price=price, reasons=reasons)

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "confidence": self.confidence,
            "amount": self.amount,
            "price": self.price,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "reasoning": self.reasoning,
        }


@dataclass
class DecisionContext:
    """Inputs for one evaluation. balance defaults to state equity at `price` when None."""
    price: float
    now: datetime
    analysis: MarketAnalysis
    risk: RiskAssessment
    prediction: Optional[ExternalPrediction] = None
    balance: Optional[float] = None


class DecisionEngine:
    def __init__(
        self,
        max_daily_trades: int = 5,
        take_profit_pct: float = 0.3,
        strategy_mode: str = "trend",
        weekly_loss_limit_pct: float = 1.5,
        prediction_confidence_threshold: float = 0.6,
        technical_confidence_threshold: float = 0.7,
        position_sizing: str = "risk_multiplier",
        risk_per_trade_pct: float = 0.5,
        max_position_pct: float = 10.0,
    ):
        self.max_daily_trades = max_daily_trades
        self.take_profit_pct = take_profit_pct
        self.strategy_mode = strategy_mode
        self.weekly_loss_limit_pct = weekly_loss_limit_pct
        self.prediction_confidence_threshold = prediction_confidence_threshold
        self.technical_confidence_threshold = technical_confidence_threshold
        self.position_sizing = position_sizing
        self.risk_per_trade_pct = risk_per_trade_pct
        self.max_position_pct = max_position_pct

    @classmethod
    def from_config(cls, config: "Config") -> "DecisionEngine":
        return cls(
            max_daily_trades=config.max_daily_trades,
            take_profit_pct=config.take_profit_pct,
            strategy_mode=config.strategy_mode,
            weekly_loss_limit_pct=config.weekly_loss_limit_pct,
            prediction_confidence_threshold=config.prediction_confidence_threshold,
            technical_confidence_threshold=config.technical_confidence_threshold,
            position_sizing=config.position_sizing,
            risk_per_trade_pct=config.risk_per_trade_pct,
            max_position_pct=config.max_position_pct,
        )

    # ----- evaluation -----

    def decide(self, state: TradingState, ctx: DecisionContext) -> Decision:
        """
        Evaluate one cycle. A BUY/SELL result moves state to ENTERING/EXITING;
        the caller must follow up with on_fill or on_rejected.
        """
        decision = self._evaluate(state, ctx)
        if decision.action == Action.BUY:
            state.phase = PositionPhase.ENTERING
            state.touch()
        elif decision.action == Action.SELL:
            state.phase = PositionPhase.EXITING
            state.touch()
        logger.info(
            "Decision %s conf=%.2f amount=%.8f price=%.2f | %s",
            decision.action.value, decision.confidence, decision.amount, decision.price,
            decision.reasons[0] if decision.reasons else "",
        )
        return decision

    def _evaluate(self, state: TradingState, ctx: DecisionContext) -> Decision:
        price = ctx.price
        signal = ctx.analysis.signal
        trail = list(signal.reasons)
        balance = state.equity(price) if ctx.balance is None else ctx.balance

        if state.phase in (PositionPhase.ENTERING, PositionPhase.EXITING):
            return Decision.hold(price, [f"Order pending ({state.phase.value})"])

        if not within_weekly_loss_limit(balance, state.weekly_pnl, self.weekly_loss_limit_pct):
            pct = state.weekly_pnl / balance * 100 if balance > 0 else 0.0
            return Decision.hold(
                price,
                [f"Weekly loss limit reached: weekly P&L {pct:.2f}% <= -{self.weekly_loss_limit_pct}%"] + trail,
            )

        position = state.position
        if state.phase == PositionPhase.OPEN and position is not None:
            if position.stop_loss is not None and price <= position.stop_loss:
                return self._exit(position, price, 1.0, [
                    f"Stop-loss reached: price {price:.2f} <= stop {position.stop_loss:.2f}",
                ])
            gain_pct = position.unrealized_pct(price) * 100
            if gain_pct >= self.take_profit_pct:
                return self._exit(position, price, 1.0, [
                    f"Take-profit reached: +{gain_pct:.2f}% >= {self.take_profit_pct}%",
                ])

        if not ctx.analysis.sufficient:
            return Decision.hold(price, ["Insufficient market data"] + trail)

        if state.daily_trade_count >= self.max_daily_trades:
            return Decision.hold(
                price, [f"Daily trade limit reached ({state.daily_trade_count}/{self.max_daily_trades})"] + trail
            )

        if ctx.risk.level == RiskLevel.HIGH:
            return Decision.hold(price, [f"Risk too high (score {ctx.risk.score:.2f})"] + trail)

        flat = state.phase == PositionPhase.FLAT
        if self.strategy_mode == "trend" and flat and ctx.analysis.daily_trend == TrendDirection.SIDEWAYS:
            return Decision.hold(price, ["Trend-only mode: long-horizon trend is SIDEWAYS"] + trail)

        if flat and not ctx.analysis.entry_condition:
            return Decision.hold(price, ["Entry condition not met: no EMA20 pullback setup"] + trail)

        action = signal.action
        if action == Action.HOLD:
            return Decision.hold(price, trail, signal.confidence)
        if action == Action.BUY and not flat:
            return Decision.hold(price, ["Already holding a position"] + trail)
        if action == Action.SELL and flat:
            return Decision.hold(price, ["No position to sell"] + trail)

        confirmed, note = self._confirm(signal.action, signal.confidence, ctx.prediction)
        if not confirmed:
            return Decision.hold(price, [note] + trail, signal.confidence)

        if action == Action.SELL:
            return self._exit(position, price, signal.confidence, ["Signal flipped to SELL", note] + trail)
        return self._enter(price, balance, signal.confidence, ctx.risk, [note] + trail)

    def _confirm(self, action: Action, confidence: float, prediction: Optional[ExternalPrediction]):
        if prediction is not None:
            if prediction.signal != action:
                return False, f"Prediction disagrees ({prediction.provider}: {prediction.signal.value})"
            if prediction.confidence <= self.prediction_confidence_threshold:
                return False, (
                    f"Prediction confidence {prediction.confidence:.2f} <= "
                    f"{self.prediction_confidence_threshold}"
                )
            return True, f"Confirmed by {prediction.provider} ({prediction.confidence:.2f})"
        if confidence <= self.technical_confidence_threshold:
            return False, f"Technical confidence {confidence:.2f} <= {self.technical_confidence_threshold} without prediction"
        return True, f"Technical confidence {confidence:.2f} without prediction"

    def _exit(self, position: Optional[Position], price: float, confidence: float, reasons: List[str]) -> Decision:
        amount = position.amount if position is not None else 0.0
        return Decision(action=Action.SELL, confidence=confidence, amount=amount, price=price, reasons=reasons)

    def _enter(
        self,
        price: float,
        balance: float,
        confidence: float,
        risk: RiskAssessment,
        reasons: List[str],
    ) -> Decision:
        stop_loss = price * (1 - risk.stop_loss_pct / 100)
        take_profit = price * (1 + risk.take_profit_pct / 100)
        if self.position_sizing == "stop_distance":
            notional = safe_position_value(
                balance, price, stop_loss, self.risk_per_trade_pct, self.max_position_pct
            )
        else:
            notional = risk.position_size
        if notional <= 0 or price <= 0:
            return Decision.hold(price, ["Position size is zero"] + reasons)
        return Decision(
            action=Action.BUY,
            confidence=confidence,
            amount=notional / price,
            price=price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            reasons=[f"BUY {notional:.2f} notional ({self.position_sizing})"] + reasons,
        )

    # ----- state transitions -----

    def on_fill(self, state: TradingState, decision: Decision, fill: Fill, now: datetime) -> TradeRecord:
        """Complete a pending transition with a confirmed fill. Returns the trade record."""
        if decision.action == Action.BUY:
            if state.phase != PositionPhase.ENTERING:
                raise ValueError(f"BUY fill in phase {state.phase.value}")
            spent = fill.amount * fill.price + fill.fee
            state.position = Position(
                side=Action.BUY,
                entry_price=fill.price,
                entry_time=now,
                amount=fill.amount,
                stop_loss=decision.stop_loss,
                take_profit=decision.take_profit,
                entry_fee=fill.fee,
                id=fill.id,
            )
            state.balance -= spent
            state.phase = PositionPhase.OPEN
            pnl = 0.0
        elif decision.action == Action.SELL:
            if state.phase != PositionPhase.EXITING or state.position is None:
                raise ValueError(f"SELL fill in phase {state.phase.value}")
            position = state.position
            proceeds = fill.amount * fill.price - fill.fee
            pnl = proceeds - (position.amount * position.entry_price + position.entry_fee)
            state.balance += proceeds
            state.position = None
            state.phase = PositionPhase.FLAT
            state.weekly_pnl += pnl
            state.total_profit += pnl
            if pnl > 0:
                state.win_trades += 1
            else:
                state.loss_trades += 1
        else:
            raise ValueError("HOLD decisions are never filled")

        state.pending_order = None
        state.daily_trade_count += 1
        state.total_trades += 1
        state.touch()
        record = TradeRecord(
            side=decision.action,
            amount=fill.amount,
            price=fill.price,
            fee=fill.fee,
            pnl=pnl,
            timestamp=now,
            id=fill.id,
            reason=decision.reasoning,
        )
        logger.info(
            "Filled %s %.8f @ %.2f fee=%.6f pnl=%.4f",
            record.side.value, record.amount, record.price, record.fee, record.pnl,
        )
        return record

    def on_rejected(self, state: TradingState, decision: Decision, reason: str) -> None:
        """Roll a pending transition back. The Position is left as it was."""
        state.pending_order = None
        if decision.action == Action.BUY and state.phase == PositionPhase.ENTERING:
            state.phase = PositionPhase.FLAT
        elif decision.action == Action.SELL and state.phase == PositionPhase.EXITING:
            state.phase = PositionPhase.OPEN if state.position is not None else PositionPhase.FLAT
        else:
            return
        state.touch()
        logger.warning("%s rejected: %s", decision.action.value, reason)

    def on_timeout(self, state: TradingState, decision: Decision, base_before: float, now: datetime) -> None:
        """
        The order call timed out and may still execute. Keep ENTERING/EXITING and
        record the order so the next cycle can reconcile it against the base balance.
        """
        state.pending_order = PendingOrder(
            side=decision.action,
            amount=decision.amount,
            price=decision.price,
            base_before=base_before,
            placed_at=now,
            stop_loss=decision.stop_loss,
            take_profit=decision.take_profit,
            reason=decision.reasoning,
        )
        state.touch()
        logger.warning("%s order outcome unknown, will reconcile next cycle", decision.action.value)

    def reconcile(
        self, state: TradingState, base_held: float, fee_rate: float, now: datetime
    ) -> Optional[TradeRecord]:
        """
        Settle a timed-out order from the current base balance. The order counts as
        filled once at least half its amount moved; the fill is booked at the
        reference price with the nominal fee. Returns the trade record, or None
        when nothing was pending or the order never went through.
        """
        pending = state.pending_order
        if pending is None:
            return None
        decision = Decision(
            action=pending.side,
            confidence=0.0,
            amount=pending.amount,
            price=pending.price,
            stop_loss=pending.stop_loss,
            take_profit=pending.take_profit,
            reasons=[pending.reason] if pending.reason else [],
        )
        if pending.side == Action.BUY:
            moved = base_held - pending.base_before
        else:
            held = state.position.amount if state.position is not None else 0.0
            moved = min(pending.base_before - base_held, held)
        if pending.amount <= 0 or moved < 0.5 * pending.amount:
            self.on_rejected(state, decision, f"order placed at {pending.placed_at.isoformat()} never filled")
            return None
        fill = Fill(
            amount=moved,
            price=pending.price,
            fee=moved * pending.price * fee_rate,
            id=f"reconciled-{int(pending.placed_at.timestamp())}",
        )
        logger.info("Reconciled %s: %.8f base moved since %s", pending.side.value, moved, pending.placed_at)
        return self.on_fill(state, decision, fill, now)
