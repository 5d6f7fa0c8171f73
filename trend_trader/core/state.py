"""
Explicit trading state for one symbol/strategy instance.

Everything the decision engine needs to remember between cycles lives here:
the position phase, the single open Position, an order awaiting reconciliation,
daily/weekly counters and running stats. It is passed into each evaluation rather than hidden on a bot instance,
so several instances can run side by side. Every mutation bumps `version`.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from trend_trader.core.types import PendingOrder, Position, PositionPhase


def week_start_of(d: date) -> date:
    """Monday of the ISO week containing d."""
    return d - timedelta(days=d.weekday())


@dataclass
class TradingState:
    symbol: str = ""
    phase: PositionPhase = PositionPhase.FLAT
    position: Optional[Position] = None
    balance: float = 0.0
    start_balance: float = 0.0
    daily_trade_count: int = 0
    trading_day: Optional[date] = None
    weekly_pnl: float = 0.0
    week_start: Optional[date] = None
    total_trades: int = 0
    win_trades: int = 0
    loss_trades: int = 0
    total_profit: float = 0.0
    pending_order: Optional[PendingOrder] = None
    version: int = 0

    @property
    def has_position(self) -> bool:
        return self.position is not None

    def equity(self, price: float) -> float:
        """Cash plus the open position marked at `price`."""
        held = self.position.amount * price if self.position is not None else 0.0
        return self.balance + held

    @property
    def win_rate(self) -> float:
        closed = self.win_trades + self.loss_trades
        return self.win_trades / closed * 100 if closed else 0.0

    @property
    def roi(self) -> float:
        return self.total_profit / self.start_balance * 100 if self.start_balance > 0 else 0.0

    def touch(self) -> None:
        self.version += 1

    def roll_calendar(self, now: datetime) -> bool:
        """
        Reset the daily trade counter on a date change and weekly P&L on an ISO week change.
        Returns True if anything was reset.
        """
        today = now.date()
        rolled = False
        if self.trading_day != today:
            if self.trading_day is not None:
                rolled = True
            self.trading_day = today
            self.daily_trade_count = 0
        monday = week_start_of(today)
        if self.week_start != monday:
            if self.week_start is not None:
                rolled = True
            self.week_start = monday
            self.weekly_pnl = 0.0
        if rolled:
            self.touch()
        return rolled

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "phase": self.phase.value,
            "position": self.position.to_dict() if self.position else None,
            "balance": self.balance,
            "start_balance": self.start_balance,
            "daily_trade_count": self.daily_trade_count,
            "trading_day": self.trading_day.isoformat() if self.trading_day else None,
            "weekly_pnl": self.weekly_pnl,
            "week_start": self.week_start.isoformat() if self.week_start else None,
            "total_trades": self.total_trades,
            "win_trades": self.win_trades,
            "loss_trades": self.loss_trades,
            "total_profit": self.total_profit,
            "pending_order": self.pending_order.to_dict() if self.pending_order else None,
            "win_rate": self.win_rate,
            "roi": self.roi,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TradingState":
        position = Position.from_dict(d["position"]) if d.get("position") else None
        pending = PendingOrder.from_dict(d["pending_order"]) if d.get("pending_order") else None
        phase = PositionPhase(d.get("phase", "FLAT"))
        # Without a recorded order there is nothing to reconcile; settle on what we hold.
        if phase in (PositionPhase.ENTERING, PositionPhase.EXITING) and pending is None:
            phase = PositionPhase.OPEN if position else PositionPhase.FLAT
        return cls(
            symbol=d.get("symbol", ""),
            phase=phase,
            position=position,
            balance=float(d.get("balance", 0.0)),
            start_balance=float(d.get("start_balance", 0.0)),
            daily_trade_count=int(d.get("daily_trade_count", 0)),
            trading_day=date.fromisoformat(d["trading_day"]) if d.get("trading_day") else None,
            weekly_pnl=float(d.get("weekly_pnl", 0.0)),
            week_start=date.fromisoformat(d["week_start"]) if d.get("week_start") else None,
            total_trades=int(d.get("total_trades", 0)),
            win_trades=int(d.get("win_trades", 0)),
            loss_trades=int(d.get("loss_trades", 0)),
            total_profit=float(d.get("total_profit", 0.0)),
            pending_order=pending,
            version=int(d.get("version", 0)),
        )
