"""
Backtesting Module

Position-based replay of annotated bars for the MA crossover, RSI and
combined strategies.

Usage:
    from fxsignal.backtesting import BacktestEngine
    result = BacktestEngine().run(annotated_bars, "COMBINED")
"""

from fxsignal.backtesting.engine import (
    BacktestEngine,
    BacktestConfig,
    BacktestTrade,
    BacktestResult,
    OpenPosition,
    PositionSide,
    compare_strategies,
    parse_strategy,
    print_results,
    run_strategy_backtest,
)

__all__ = [
    'BacktestEngine',
    'BacktestConfig',
    'BacktestTrade',
    'BacktestResult',
    'OpenPosition',
    'PositionSide',
    'compare_strategies',
    'parse_strategy',
    'print_results',
    'run_strategy_backtest',
]
