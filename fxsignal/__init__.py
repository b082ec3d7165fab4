"""
FxSignal
========

Deterministic indicator, market-classification and backtesting engine
for currency pairs.

Modules:
    - core: Configuration, logging, and exceptions
    - strategies: Indicator library, value types and the market analyzer
    - backtesting: Strategy backtest engine and command-line runner
    - data: Synthetic and recorded bar sources
"""

__version__ = "1.0.0"
__author__ = "FxSignal"
