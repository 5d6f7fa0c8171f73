"""
JSON file sink: trades, predictions and the state snapshot.

Write-only from the core's view: failures are logged and swallowed so a full disk
never stops the trading loop. The snapshot is read back once, at startup.
"""

from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from trend_trader.core.state import TradingState
from trend_trader.core.types import ExternalPrediction, TradeRecord

logger = logging.getLogger("trend_trader.persistence")

TRADES_FILE = "trades.json"
PREDICTIONS_FILE = "ai_predictions.json"
SNAPSHOT_FILE = "bot_data.json"
MAX_PREDICTIONS = 1000


class JsonStore:
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _read_list(self, name: str) -> list:
        path = self._path(name)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s, starting a new file: %s", path, e)
            return []
        return data if isinstance(data, list) else []

    def _write(self, name: str, data: Any) -> bool:
        path = self._path(name)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True, default=str)
            os.replace(tmp, path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write %s: %s", path, e)
            return False

    def append_trade(self, record: TradeRecord) -> bool:
        trades = self._read_list(TRADES_FILE)
        trades.append(record.to_dict())
        return self._write(TRADES_FILE, trades)

    def append_prediction(self, prediction: ExternalPrediction) -> bool:
        predictions = self._read_list(PREDICTIONS_FILE)
        predictions.append(prediction.to_dict())
        return self._write(PREDICTIONS_FILE, predictions[-MAX_PREDICTIONS:])

    def save_snapshot(self, state: TradingState, extra: Optional[dict] = None) -> bool:
        payload = {"state": state.to_dict()}
        if extra:
            payload.update(extra)
        return self._write(SNAPSHOT_FILE, payload)

    def load_snapshot(self) -> Optional[TradingState]:
        path = self._path(SNAPSHOT_FILE)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            return TradingState.from_dict(payload["state"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable snapshot %s: %s", path, e)
            return None

    def load_trades(self) -> list:
        return self._read_list(TRADES_FILE)
