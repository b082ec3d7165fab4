"""
Engine Value Types

Bars, annotated bars and the analysis record shared by the indicator
library, the market analyzer and the backtest engine. Everything here is
an immutable value; nothing holds a reference back into a sequence.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class StrategyType(str, Enum):
    """Backtest strategy selector"""
    MA_CROSSOVER = "MA_CROSSOVER"
    RSI = "RSI"
    COMBINED = "COMBINED"


class Trend(str, Enum):
    """Direction implied by the fast/slow moving averages"""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class MarketCondition(str, Enum):
    """Regime label that decides which signal rules apply"""
    TRENDING = "TRENDING"
    RANGING = "RANGING"
    VOLATILE = "VOLATILE"


class SignalType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Crossover(str, Enum):
    """Moving-average crossover between two adjacent bars"""
    GOLDEN_CROSS = "GOLDEN_CROSS"
    DEATH_CROSS = "DEATH_CROSS"


@dataclass(frozen=True)
class Bar:
    """One OHLCV interval."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class MACDValue:
    """MACD triple for a single bar. histogram is always line - signal."""
    macd_line: float
    signal_line: float
    histogram: float

    @property
    def is_bullish(self) -> bool:
        return self.histogram > 0 and self.macd_line > self.signal_line

    @property
    def is_bearish(self) -> bool:
        return self.histogram < 0 and self.macd_line < self.signal_line

    def is_strong(self, threshold: float) -> bool:
        return abs(self.histogram) > threshold


@dataclass(frozen=True)
class AnnotatedBar(Bar):
    """
    A bar plus the indicator values computed from it and its history.

    Indicator fields are None until the bar sits far enough into its
    sequence for the indicator to be defined.
    """
    ma50: Optional[float] = None
    ma200: Optional[float] = None
    rsi: Optional[float] = None
    macd: Optional[MACDValue] = None
    atr: Optional[float] = None

    @classmethod
    def from_bar(cls, bar: Bar, **indicators: Any) -> "AnnotatedBar":
        return cls(
            timestamp=bar.timestamp,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
            volume=bar.volume,
            **indicators
        )

    @property
    def has_moving_averages(self) -> bool:
        return self.ma50 is not None and self.ma200 is not None


@dataclass(frozen=True)
class MarketAnalysis:
    """
    Result of classifying the latest bar.

    Recomputed from two adjacent annotated bars every time; never cached.
    """
    pair: str
    current_price: float
    ma50: Optional[float]
    ma200: Optional[float]
    rsi: Optional[float]
    macd: Optional[MACDValue]
    atr: Optional[float]
    trend: Trend
    market_condition: MarketCondition
    signal: SignalType
    confidence: int
    crossover: Optional[Crossover] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["trend"] = self.trend.value
        data["market_condition"] = self.market_condition.value
        data["signal"] = self.signal.value
        data["crossover"] = self.crossover.value if self.crossover else None
        return data
