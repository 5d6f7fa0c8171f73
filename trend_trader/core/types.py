"""
Core data types: bars, actions, positions, fills, trade records, predictions.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class TrendDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    SIDEWAYS = "SIDEWAYS"


class TrendStrength(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"


class VolumeStrength(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class VolumeTrend(str, Enum):
    INCREASING = "INCREASING"
    DECREASING = "DECREASING"
    STABLE = "STABLE"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class PositionPhase(str, Enum):
    FLAT = "FLAT"
    ENTERING = "ENTERING"
    OPEN = "OPEN"
    EXITING = "EXITING"


@dataclass(frozen=True)
class Bar:
    """OHLCV candle."""
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3.0


@dataclass
class Position:
    """The single open long exposure."""
    side: Action
    entry_price: float
    entry_time: datetime
    amount: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    entry_fee: float = 0.0
    id: str = ""

    def unrealized_pct(self, price: float) -> float:
        """Unrealized P&L as a fraction of entry (e.g. -0.02 = -2%)."""
        if self.entry_price <= 0:
            return 0.0
        return (price - self.entry_price) / self.entry_price

    def to_dict(self) -> dict:
        d = asdict(self)
        d["side"] = self.side.value
        d["entry_time"] = self.entry_time.isoformat()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Position":
        return cls(
            side=Action(d["side"]),
            entry_price=float(d["entry_price"]),
            entry_time=datetime.fromisoformat(d["entry_time"]),
            amount=float(d["amount"]),
            stop_loss=d.get("stop_loss"),
            take_profit=d.get("take_profit"),
            entry_fee=float(d.get("entry_fee", 0.0)),
            id=d.get("id", ""),
        )


@dataclass
class PendingOrder:
    """
    An order whose outcome is unknown because the exchange call timed out.
    base_before is the free base-asset balance read just before placing it;
    comparing it with a later reading tells whether the order went through.
    """
    side: Action
    amount: float
    price: float
    base_before: float
    placed_at: datetime
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    reason: str = ""

    def to_dict(self) -> dict:
        d = asdict(self)
        d["side"] = self.side.value
        d["placed_at"] = self.placed_at.isoformat()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "PendingOrder":
        return cls(
            side=Action(d["side"]),
            amount=float(d["amount"]),
            price=float(d["price"]),
            base_before=float(d["base_before"]),
            placed_at=datetime.fromisoformat(d["placed_at"]),
            stop_loss=d.get("stop_loss"),
            take_profit=d.get("take_profit"),
            reason=d.get("reason", ""),
        )


@dataclass(frozen=True)
class Fill:
    """Confirmed execution reported by an execution client."""
    amount: float
    price: float
    fee: float
    id: str = ""


@dataclass(frozen=True)
class TradeRecord:
    """Executed decision. Written once, never mutated."""
    side: Action
    amount: float
    price: float
    fee: float
    pnl: float
    timestamp: datetime
    id: str = ""
    reason: str = ""

    @property
    def cost(self) -> float:
        return self.amount * self.price

    def to_dict(self) -> dict:
        d = asdict(self)
        d["side"] = self.side.value
        d["timestamp"] = self.timestamp.isoformat()
        return d


@dataclass(frozen=True)
class ExternalPrediction:
    """Advisory opinion from an external provider (or the backtest proxy)."""
    signal: Action
    confidence: float
    provider: str
    reasoning: str = ""
    target_price: Optional[float] = None
    stop_loss: Optional[float] = None
    timestamp: Optional[datetime] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["signal"] = self.signal.value
        d["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        return d


@dataclass
class MarketSnapshot:
    """What an advisory provider gets to see for one cycle."""
    symbol: str
    price: float
    volume: float
    timestamp: datetime
    rsi: float = 50.0
    macd: float = 0.0
    sma20: float = 0.0
    sma50: float = 0.0
    ohlcv: list = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "currentPrice": self.price,
            "volume": self.volume,
            "timestamp": self.timestamp.isoformat(),
            "rsi": self.rsi,
            "macd": self.macd,
            "sma20": self.sma20,
            "sma50": self.sma50,
            "ohlcv": self.ohlcv,
        }
