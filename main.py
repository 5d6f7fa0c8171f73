#!/usr/bin/env python3
"""
Trend Trader CLI: backtest | live
Usage:
  python main.py backtest [--config config.yaml] [--csv bars.csv] [--report out.json]
  python main.py live [--config config.yaml] [--paper]
"""

from __future__ import annotations
import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from trend_trader.backtesting import BacktestSimulator, build_report, format_summary, write_report
from trend_trader.core.config import Config, ConfigError, load_config
from trend_trader.core.logger import setup_logging
from trend_trader.decision import DecisionEngine
from trend_trader.execution import BinanceSpotClient, PaperExecutionClient
from trend_trader.live import CycleScheduler, TradingBot
from trend_trader.persistence import JsonStore
from trend_trader.prediction import HttpPredictionProvider, ProviderChain
from trend_trader.risk import RiskAssessor
from trend_trader.strategies import TrendPullbackStrategy
from trend_trader.utils.frames import load_csv

logger = logging.getLogger("trend_trader")

BACKTEST_FETCH_LIMIT = 1000


def _load(config_path: Path | None) -> Config | None:
    try:
        config = load_config(config_path, ROOT)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return None
    setup_logging(config.log_level, config.log_dir, config.log_file)
    return config


def _binance(config: Config) -> BinanceSpotClient:
    return BinanceSpotClient(
        config.binance_api_key,
        config.binance_api_secret,
        testnet=config.use_testnet,
        fee_rate=config.fee_rate,
        request_timeout_s=config.request_timeout_s,
    )


def build_provider_chain(config: Config) -> ProviderChain | None:
    """Ranked HTTP providers from `advisory.providers`. None when advisory is off."""
    if not config.ai_advisor_enabled:
        return None
    providers = []
    for i, entry in enumerate(config.advisory_providers):
        url = entry.get("url", "")
        if not url:
            logger.warning("Advisory provider #%d has no url, skipping", i + 1)
            continue
        providers.append(HttpPredictionProvider(
            name=entry.get("name", f"provider-{i + 1}"),
            url=url,
            api_key=config.advisory_api_key,
            timeout_s=config.advisory_timeout_s,
        ))
    if not providers:
        logger.warning("Advisory enabled but no providers configured; running technical-only")
        return None
    return ProviderChain(providers)


def run_backtest(config_path: Path | None, csv_path: Path | None, report_path: Path | None) -> int:
    """Run backtest on CSV bars or bars fetched from the exchange."""
    config = _load(config_path)
    if config is None:
        return 2
    csv_path = csv_path or (Path(config.backtest_csv) if config.backtest_csv else None)
    if csv_path is not None:
        df = load_csv(csv_path)
        logger.info("Loaded %d bars from %s", len(df), csv_path)
    else:
        df = _binance(config).get_klines(config.symbol, config.timeframe, limit=BACKTEST_FETCH_LIMIT)
        logger.info("Fetched %d %s bars for %s", len(df), config.timeframe, config.symbol)
    if len(df) <= config.warmup_bars:
        logger.error("Need more than %d bars for a backtest, got %d", config.warmup_bars, len(df))
        return 1

    result = BacktestSimulator.from_config(config).run(df)
    report = build_report(config, result)
    path = write_report(report_path or config.backtest_report_path, report)
    print(format_summary(report))
    print(f"Report written to {path}")
    return 0


def run_live(config_path: Path | None, paper: bool) -> int:
    """Run the fixed-interval live loop until Ctrl-C."""
    config = _load(config_path)
    if config is None:
        return 2
    exchange = _binance(config)
    if paper:
        client = PaperExecutionClient(
            quote_balance=config.backtest_initial_capital, fee_rate=config.fee_rate, market_data=exchange
        )
        config.trading_enabled = True
        logger.info("Paper trading: orders are simulated")
    else:
        if config.trading_enabled and (not config.binance_api_key or not config.binance_api_secret):
            logger.error("Missing BINANCE_API_KEY or BINANCE_API_SECRET in .env")
            return 1
        client = exchange
    if not config.trading_enabled:
        logger.warning("TRADING_ENABLED is off: decisions are logged, no orders are sent")

    bot = TradingBot(
        config=config,
        client=client,
        strategy=TrendPullbackStrategy(warmup_bars=config.warmup_bars),
        risk_assessor=RiskAssessor(
            max_daily_trades=config.max_daily_trades,
            trade_amount=config.trade_amount,
            max_position_size=config.max_position_size,
            stop_loss_pct=config.stop_loss_pct,
            take_profit_pct=config.take_profit_pct,
        ),
        engine=DecisionEngine.from_config(config),
        store=JsonStore(config.data_dir),
        chain=build_provider_chain(config),
    )
    bot.restore()

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    logger.info(
        "Trend trader starting | %s %s | every %d min | testnet=%s",
        config.symbol, config.timeframe, config.cycle_interval_minutes, config.use_testnet,
    )
    CycleScheduler(bot.run_cycle, config.cycle_interval_minutes * 60).run_forever(stop)
    logger.info("Shutdown by user")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Trend Trader CLI")
    parser.add_argument("mode", choices=["backtest", "live"], help="Run backtest or live")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--csv", type=Path, default=None, help="Backtest: OHLCV CSV instead of exchange data")
    parser.add_argument("--report", type=Path, default=None, help="Backtest: report output path")
    parser.add_argument("--paper", action="store_true", help="Live: simulate fills instead of sending orders")
    args = parser.parse_args()
    if args.mode == "backtest":
        return run_backtest(args.config, args.csv, args.report)
    return run_live(args.config, args.paper)


if __name__ == "__main__":
    sys.exit(main())
