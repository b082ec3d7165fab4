"""
Custom Exceptions
=================
Centralized exception definitions for the signal engine.

Insufficient history is never an error: indicators return None and the
analyzer returns a degenerate record. Exceptions are reserved for
programming mistakes (bad periods, unknown strategies) and for the data
collaborators that read bars from outside the process.
"""

from typing import Any, Optional


class TradingSystemError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(TradingSystemError):
    """Raised when there's a configuration problem."""
    pass


class InvalidSettingsError(ConfigurationError):
    """Raised when settings validation fails."""

    def __init__(self, problems: list[str]):
        super().__init__(
            "Invalid engine settings",
            {"problems": problems}
        )


# =============================================================================
# Strategy Errors
# =============================================================================

class StrategyError(TradingSystemError):
    """Base class for strategy-related errors."""
    pass


class IndicatorCalculationError(StrategyError):
    """Raised when an indicator is asked for with unusable parameters."""

    def __init__(self, indicator_name: str, reason: str):
        super().__init__(
            f"Failed to calculate {indicator_name}: {reason}",
            {"indicator_name": indicator_name, "reason": reason}
        )


class UnknownStrategyError(StrategyError):
    """Raised when a backtest is requested for a strategy that doesn't exist."""

    def __init__(self, strategy: Any, available: list[str]):
        super().__init__(
            f"Unknown strategy: {strategy}",
            {"strategy": str(strategy), "available": available}
        )


# =============================================================================
# Data Errors
# =============================================================================

class DataError(TradingSystemError):
    """Base class for data-related errors."""
    pass


class MarketDataError(DataError):
    """Raised when there's an issue with market data."""
    pass
