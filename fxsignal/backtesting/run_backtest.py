"""
Backtest Runner

Command-line entry point: loads (or generates) bars, annotates them,
prints the latest market analysis and backtests one or all strategies.

    python -m fxsignal.backtesting.run_backtest --pair EUR/USD --all --seed 7
"""

import argparse
import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from tqdm import tqdm

from fxsignal.backtesting.engine import (
    BacktestConfig,
    BacktestEngine,
    BacktestResult,
    parse_strategy,
    print_results,
)
from fxsignal.core.config import Settings, get_settings
from fxsignal.core.exceptions import InvalidSettingsError
from fxsignal.core.logging_config import AnalysisContextLogger, get_logger, setup_logging
from fxsignal.data.market_data import format_price, generate_market_data, load_bars_csv
from fxsignal.strategies.indicators import IndicatorCalculator, IndicatorConfig
from fxsignal.strategies.market_analyzer import MarketAnalyzer
from fxsignal.strategies.models import AnnotatedBar, Bar, MarketAnalysis, StrategyType

logger = get_logger("run_backtest")


def load_bars(
    settings: Settings,
    pair: str,
    csv_path: Optional[str] = None,
    count: Optional[int] = None,
    seed: Optional[int] = None
) -> List[Bar]:
    """Read bars from CSV, or generate synthetic ones."""
    if csv_path:
        return load_bars_csv(csv_path)
    return generate_market_data(
        pair=pair,
        count=count or settings.synthetic_bar_count,
        warmup=settings.synthetic_warmup,
        seed=seed if seed is not None else settings.synthetic_seed
    )


def latest_analysis(
    bars: Sequence[AnnotatedBar],
    pair: str,
    analyzer: Optional[MarketAnalyzer] = None
) -> Optional[MarketAnalysis]:
    """Analysis of the last bar, or None when there are fewer than two bars."""
    if len(bars) < 2:
        return None
    analyzer = analyzer or MarketAnalyzer()
    return analyzer.analyze(bars[-1], bars[-2], pair)


def run_backtests(
    bars: Sequence[AnnotatedBar],
    strategies: Sequence[StrategyType],
    config: BacktestConfig,
    show_progress: bool = True
) -> Dict[StrategyType, BacktestResult]:
    engine = BacktestEngine(config)
    results = {}
    for strategy in tqdm(strategies, desc="Backtesting", unit="strategy", disable=not show_progress):
        with AnalysisContextLogger(strategy=strategy.value):
            results[strategy] = engine.run(bars, strategy)
    return results


def print_analysis(analysis: MarketAnalysis) -> None:
    pair = analysis.pair
    print("\n" + "=" * 60)
    print(f"MARKET ANALYSIS - {pair}")
    print("=" * 60)
    print(f"  Price:              {format_price(analysis.current_price, pair)}")
    print(f"  MA50 / MA200:       {format_price(analysis.ma50, pair)} / {format_price(analysis.ma200, pair)}")
    print(f"  RSI:                {analysis.rsi:.2f}" if analysis.rsi is not None else "  RSI:                -")
    if analysis.macd is not None:
        print(f"  MACD Histogram:     {analysis.macd.histogram:+.6f}")
    print(f"  ATR:                {format_price(analysis.atr, pair)}")
    print(f"  Trend:              {analysis.trend.value}")
    print(f"  Condition:          {analysis.market_condition.value}")
    if analysis.crossover is not None:
        print(f"  Crossover:          {analysis.crossover.value}")
    print(f"  Signal:             {analysis.signal.value} ({analysis.confidence}% confidence)")


def save_trades(results: Dict[StrategyType, BacktestResult], path: Path) -> None:
    """Write every strategy's closed trades to one CSV."""
    rows = [
        {"strategy": strategy.value, **trade.to_dict()}
        for strategy, result in results.items()
        for trade in result.history
    ]
    pd.DataFrame(
        rows,
        columns=["strategy", "time", "direction", "price", "profit", "entry_price"]
    ).to_csv(path, index=False)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point with argument parsing"""
    settings = get_settings()

    parser = argparse.ArgumentParser(description='Indicator analysis and strategy backtest')
    parser.add_argument('--pair', type=str, default=settings.default_pair, help='Currency pair')
    parser.add_argument('--strategy', type=str, default=settings.default_strategy.value,
                        help='MA_CROSSOVER, RSI or COMBINED')
    parser.add_argument('--all', action='store_true', help='Backtest every strategy')
    parser.add_argument('--bars', type=int, default=None, help='Synthetic bar count')
    parser.add_argument('--seed', type=int, default=None, help='Synthetic data seed')
    parser.add_argument('--csv', type=str, default=None, help='Load bars from a CSV file')
    parser.add_argument('--trades-out', type=str, default=None, help='Write closed trades to CSV')
    parser.add_argument('--cross-exit', action='store_true',
                        help='COMBINED: exit on an adverse MA crossover')
    parser.add_argument('--strict', action='store_true',
                        help='Treat configuration warnings as errors')
    parser.add_argument('--json', action='store_true', help='Print results as JSON')

    args = parser.parse_args(argv)

    setup_logging(json_format=args.json or None)
    warnings = settings.validate_engine_config()
    if warnings and args.strict:
        raise InvalidSettingsError(warnings)
    for warning in warnings:
        logger.warning("Configuration warning", warning=warning)

    pair = args.pair.strip().upper()
    strategies = list(StrategyType) if args.all else [parse_strategy(args.strategy)]

    backtest_config = BacktestConfig.from_settings(settings)
    backtest_config.combined_cross_exit = args.cross_exit

    with AnalysisContextLogger(pair=pair):
        bars = load_bars(settings, pair, csv_path=args.csv, count=args.bars, seed=args.seed)
        annotated = IndicatorCalculator.annotate_bars(bars, IndicatorConfig.from_settings(settings))

        analysis = latest_analysis(annotated, pair)
        results = run_backtests(annotated, strategies, backtest_config, show_progress=not args.json)

    if args.json:
        print(json.dumps(
            {
                "pair": pair,
                "bars": len(annotated),
                "analysis": analysis.to_dict() if analysis else None,
                "backtests": {s.value: r.to_dict() for s, r in results.items()},
            },
            indent=2,
            default=str
        ))
    else:
        if analysis is not None:
            print_analysis(analysis)
        for result in results.values():
            print_results(result, pair)

    if args.trades_out:
        save_trades(results, Path(args.trades_out))
        logger.info("Trades saved", path=args.trades_out)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
