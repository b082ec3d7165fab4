"""
Core Module
===========
Core utilities, configuration, and shared components.
"""

from fxsignal.core.config import Settings, get_settings
from fxsignal.core.logging_config import (
    get_logger,
    setup_logging,
    LogMessages,
    AnalysisContextLogger
)
from fxsignal.core.exceptions import (
    TradingSystemError,
    ConfigurationError,
    InvalidSettingsError,
    StrategyError,
    IndicatorCalculationError,
    UnknownStrategyError,
    DataError,
    MarketDataError,
)

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Logging
    "get_logger",
    "setup_logging",
    "LogMessages",
    "AnalysisContextLogger",
    # Exceptions
    "TradingSystemError",
    "ConfigurationError",
    "InvalidSettingsError",
    "StrategyError",
    "IndicatorCalculationError",
    "UnknownStrategyError",
    "DataError",
    "MarketDataError",
]
