"""Backtest report artifact: config used, performance, final portfolio. Deterministic bytes."""

from __future__ import annotations
import json
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from trend_trader.backtesting.engine import BacktestResult

if TYPE_CHECKING:
    from trend_trader.core.config import Config


def build_report(config: Optional["Config"], result: BacktestResult) -> dict:
    """No wall-clock fields: identical bars and config give an identical report."""
    state = result.state
    return {
        "config": config.to_dict() if config is not None else {},
        "results": result.report.to_dict() if result.report else {},
        "portfolio": result.portfolio.to_dict() if result.portfolio else {},
        "open_position": state.position.to_dict() if state and state.position else None,
        "bars": {
            "count": result.bars,
            "evaluated": result.evaluated_bars,
            "first": result.first_bar.isoformat() if result.first_bar else None,
            "last": result.last_bar.isoformat() if result.last_bar else None,
        },
    }


def dumps_report(report: dict) -> str:
    return json.dumps(report, indent=2, sort_keys=True, default=str) + "\n"


def write_report(path: Path, report: dict) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(dumps_report(report))
    return path


def format_summary(report: dict) -> str:
    r = report.get("results", {})
    lines = [
        "=== Backtest ===",
        f"Trades: {r.get('total_trades', 0)} (closed {r.get('closed_trades', 0)})",
        f"Win rate: {r.get('win_rate', 0.0):.2f}%",
        f"Avg profit / loss: {r.get('avg_profit', 0.0):.4f} / {r.get('avg_loss', 0.0):.4f}",
        f"Profit factor: {r.get('profit_factor', 0.0):.2f}",
        f"Total profit: {r.get('total_profit', 0.0):.2f}",
        f"ROI: {r.get('roi', 0.0):.2f}%",
        f"Max drawdown: {r.get('max_drawdown_pct', 0.0):.2f}%",
        f"Sharpe: {r.get('sharpe_ratio', 0.0):.2f}",
    ]
    return "\n".join(lines)
