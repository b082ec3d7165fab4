"""
Strategies Module

Indicator library, engine value types and the adaptive market analyzer.
Import from the submodules directly (fxsignal.strategies.indicators,
fxsignal.strategies.market_analyzer, fxsignal.strategies.models).
"""
