"""Persistence: JSON files for trades, predictions and the state snapshot."""

from trend_trader.persistence.store import JsonStore

__all__ = ["JsonStore"]
