"""
Load configuration from config.yaml and .env. API keys only from env.
Invalid values are rejected here, never mid-cycle.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from trend_trader.utils.timeframes import timeframe_minutes

STRATEGY_MODES = ("trend", "adaptive")
SIZING_MODES = ("risk_multiplier", "stop_distance")


class ConfigError(ValueError):
    """Configuration value out of range or unknown."""


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns a validated Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    api = data.get("api", {})
    strategy = data.get("strategy", {})
    risk = data.get("risk", {})
    advisory = data.get("advisory", {})
    execution = data.get("execution", {})
    persistence = data.get("persistence", {})
    logging_cfg = data.get("logging", {})
    backtest = data.get("backtest", {})

    config = Config(
        binance_api_key=env("BINANCE_API_KEY", api.get("binance_api_key", "")),
        binance_api_secret=env("BINANCE_API_SECRET", api.get("binance_api_secret", "")),
        use_testnet=env_bool("USE_TESTNET", api.get("use_testnet", True)),
        # Strategy
        symbol=env("SYMBOL", strategy.get("symbol", "BTCUSDT")).upper(),
        timeframe=env("TIMEFRAME", strategy.get("timeframe", "1h")),
        strategy_mode=env("STRATEGY_MODE", strategy.get("mode", "trend")).lower(),
        warmup_bars=env_int("WARMUP_BARS", strategy.get("warmup_bars", 60)),
        window_bars=env_int("WINDOW_BARS", strategy.get("window_bars", 200)),
        cycle_interval_minutes=env_int("CYCLE_INTERVAL_MINUTES", strategy.get("cycle_interval_minutes", 5)),
        # Risk
        stop_loss_pct=env_float("STOP_LOSS_PERCENTAGE", risk.get("stop_loss_pct", 1.0)),
        take_profit_pct=env_float("TAKE_PROFIT_PERCENTAGE", risk.get("take_profit_pct", 0.3)),
        max_daily_trades=env_int("MAX_TRADES_PER_DAY", risk.get("max_daily_trades", 5)),
        trade_amount=env_float("TRADE_AMOUNT", risk.get("trade_amount", 10.0)),
        max_position_size=env_float("MAX_POSITION_SIZE", risk.get("max_position_size", 100.0)),
        weekly_loss_limit_pct=env_float("WEEKLY_LOSS_LIMIT_PCT", risk.get("weekly_loss_limit_pct", 1.5)),
        position_sizing=env("POSITION_SIZING", risk.get("position_sizing", "risk_multiplier")).lower(),
        risk_per_trade_pct=env_float("RISK_PER_TRADE_PCT", risk.get("risk_per_trade_pct", 0.5)),
        max_position_pct=env_float("MAX_POSITION_PCT", risk.get("max_position_pct", 10.0)),
        # Advisory
        ai_advisor_enabled=env_bool("AI_ADVISOR_ENABLED", advisory.get("enabled", False)),
        prediction_confidence_threshold=env_float(
            "PREDICTION_CONFIDENCE_THRESHOLD", advisory.get("confidence_threshold", 0.6)
        ),
        technical_confidence_threshold=env_float(
            "TECHNICAL_CONFIDENCE_THRESHOLD", advisory.get("technical_confidence_threshold", 0.7)
        ),
        advisory_providers=list(advisory.get("providers", []) or []),
        advisory_api_key=env("AI_ADVISOR_API_KEY", ""),
        advisory_timeout_s=env_float("AI_ADVISOR_TIMEOUT", advisory.get("timeout_s", 10.0)),
        # Execution
        trading_enabled=env_bool("TRADING_ENABLED", execution.get("trading_enabled", False)),
        fee_rate=env_float("FEE_RATE", execution.get("fee_rate", 0.001)),
        request_timeout_s=env_float("REQUEST_TIMEOUT", execution.get("request_timeout_s", 15.0)),
        # Persistence
        data_dir=Path(env("DATA_DIR", persistence.get("data_dir", "data"))),
        # Logging
        log_level=logging_cfg.get("level", "INFO"),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "trend_trader.log"),
        # Backtest
        backtest_initial_capital=float(backtest.get("initial_capital", 1000.0)),
        backtest_csv=backtest.get("csv"),
        backtest_report_path=Path(backtest.get("report_path", "data/backtest_report.json")),
    )
    config.validate()
    return config


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "binance_api_key", "binance_api_secret", "use_testnet",
        "symbol", "timeframe", "strategy_mode", "warmup_bars", "window_bars", "cycle_interval_minutes",
        "stop_loss_pct", "take_profit_pct", "max_daily_trades", "trade_amount", "max_position_size",
        "weekly_loss_limit_pct", "position_sizing", "risk_per_trade_pct", "max_position_pct",
        "ai_advisor_enabled", "prediction_confidence_threshold", "technical_confidence_threshold",
        "advisory_providers", "advisory_api_key", "advisory_timeout_s",
        "trading_enabled", "fee_rate", "request_timeout_s",
        "data_dir",
        "log_level", "log_dir", "log_file",
        "backtest_initial_capital", "backtest_csv", "backtest_report_path",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        use_testnet: bool = True,
        symbol: str = "BTCUSDT",
        timeframe: str = "1h",
        strategy_mode: str = "trend",
        warmup_bars: int = 60,
        window_bars: int = 200,
        cycle_interval_minutes: int = 5,
        stop_loss_pct: float = 1.0,
        take_profit_pct: float = 0.3,
        max_daily_trades: int = 5,
        trade_amount: float = 10.0,
        max_position_size: float = 100.0,
        weekly_loss_limit_pct: float = 1.5,
        position_sizing: str = "risk_multiplier",
        risk_per_trade_pct: float = 0.5,
        max_position_pct: float = 10.0,
        ai_advisor_enabled: bool = False,
        prediction_confidence_threshold: float = 0.6,
        technical_confidence_threshold: float = 0.7,
        advisory_providers: Optional[list] = None,
        advisory_api_key: str = "",
        advisory_timeout_s: float = 10.0,
        trading_enabled: bool = False,
        fee_rate: float = 0.001,
        request_timeout_s: float = 15.0,
        data_dir: Path = None,
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "trend_trader.log",
        backtest_initial_capital: float = 1000.0,
        backtest_csv: Optional[str] = None,
        backtest_report_path: Path = None,
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.use_testnet = use_testnet
        self.symbol = symbol
        self.timeframe = timeframe
        self.strategy_mode = strategy_mode
        self.warmup_bars = warmup_bars
        self.window_bars = window_bars
        self.cycle_interval_minutes = cycle_interval_minutes
        self.stop_loss_pct = stop_loss_pct
        self.take_profit_pct = take_profit_pct
        self.max_daily_trades = max_daily_trades
        self.trade_amount = trade_amount
        self.max_position_size = max_position_size
        self.weekly_loss_limit_pct = weekly_loss_limit_pct
        self.position_sizing = position_sizing
        self.risk_per_trade_pct = risk_per_trade_pct
        self.max_position_pct = max_position_pct
        self.ai_advisor_enabled = ai_advisor_enabled
        self.prediction_confidence_threshold = prediction_confidence_threshold
        self.technical_confidence_threshold = technical_confidence_threshold
        self.advisory_providers = advisory_providers or []
        self.advisory_api_key = advisory_api_key
        self.advisory_timeout_s = advisory_timeout_s
        self.trading_enabled = trading_enabled
        self.fee_rate = fee_rate
        self.request_timeout_s = request_timeout_s
        self.data_dir = Path(data_dir) if data_dir else Path("data")
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
        self.backtest_initial_capital = backtest_initial_capital
        self.backtest_csv = backtest_csv
        self.backtest_report_path = (
            Path(backtest_report_path) if backtest_report_path else Path("data/backtest_report.json")
        )

    def validate(self) -> "Config":
        """Raise ConfigError on out-of-range percentages or non-positive amounts."""
        for name in (
            "stop_loss_pct", "take_profit_pct", "weekly_loss_limit_pct",
            "risk_per_trade_pct", "max_position_pct",
        ):
            value = getattr(self, name)
            if not 0 < value <= 100:
                raise ConfigError(f"{name} must be in (0, 100], got {value}")
        for name in ("trade_amount", "max_position_size", "backtest_initial_capital"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")
        if self.max_daily_trades <= 0:
            raise ConfigError(f"max_daily_trades must be positive, got {self.max_daily_trades}")
        if self.cycle_interval_minutes <= 0:
            raise ConfigError(f"cycle_interval_minutes must be positive, got {self.cycle_interval_minutes}")
        for name in ("prediction_confidence_threshold", "technical_confidence_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ConfigError(f"{name} must be in [0, 1], got {value}")
        if not 0 <= self.fee_rate < 1:
            raise ConfigError(f"fee_rate must be in [0, 1), got {self.fee_rate}")
        if self.strategy_mode not in STRATEGY_MODES:
            raise ConfigError(f"strategy_mode must be one of {STRATEGY_MODES}, got {self.strategy_mode!r}")
        if self.position_sizing not in SIZING_MODES:
            raise ConfigError(f"position_sizing must be one of {SIZING_MODES}, got {self.position_sizing!r}")
        if self.warmup_bars < 1 or self.window_bars < self.warmup_bars:
            raise ConfigError(
                f"need 1 <= warmup_bars <= window_bars, got {self.warmup_bars} / {self.window_bars}"
            )
        if self.advisory_timeout_s <= 0 or self.request_timeout_s <= 0:
            raise ConfigError("timeouts must be positive")
        try:
            timeframe_minutes(self.timeframe)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        return self

    def to_dict(self) -> dict:
        """Non-secret settings, for reports and snapshots."""
        out = {}
        for name in self.__slots__:
            if name in ("binance_api_key", "binance_api_secret", "advisory_api_key"):
                continue
            value = getattr(self, name)
            out[name] = str(value) if isinstance(value, Path) else value
        return out
