"""
Indicator Calculator

Calculates the technical indicators used by the market analyzer and the
backtest engine:
- SMA (Simple Moving Average)
- EMA (Exponential Moving Average)
- RSI (Relative Strength Index, Wilder smoothing)
- MACD (12/26/9 convergence/divergence)
- ATR (Average True Range, simple running average)

Every recurrence is written out explicitly so results are reproducible
bit-for-bit; nothing here delegates to rolling/ewm helpers whose internal
summation order differs.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from fxsignal.core.exceptions import IndicatorCalculationError, MarketDataError
from fxsignal.core.logging_config import get_logger, LogMessages
from fxsignal.strategies.models import AnnotatedBar, Bar, MACDValue

logger = get_logger("indicators")


@dataclass
class IndicatorConfig:
    """Configuration for indicator calculations"""
    ma_fast: int = 50
    ma_slow: int = 200
    rsi_period: int = 14
    atr_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9

    @classmethod
    def from_settings(cls, settings) -> "IndicatorConfig":
        return cls(
            ma_fast=settings.ma_fast_period,
            ma_slow=settings.ma_slow_period,
            rsi_period=settings.rsi_period,
            atr_period=settings.atr_period,
            macd_fast=settings.macd_fast,
            macd_slow=settings.macd_slow,
            macd_signal=settings.macd_signal,
        )


@dataclass
class MACDSeries:
    """Pointwise MACD output, one entry per input close."""
    macd_line: List[float] = field(default_factory=list)
    signal_line: List[float] = field(default_factory=list)
    histogram: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.macd_line)

    def at(self, index: int) -> MACDValue:
        return MACDValue(
            macd_line=self.macd_line[index],
            signal_line=self.signal_line[index],
            histogram=self.histogram[index],
        )


def _check_period(indicator_name: str, period: int) -> None:
    if period < 1:
        raise IndicatorCalculationError(indicator_name, f"period must be >= 1, got {period}")


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


class IndicatorCalculator:
    """
    Calculate technical indicators for strategy analysis.

    All methods are static for easy testing and reusability. Scalar
    methods (calculate_sma, calculate_rsi) answer for the latest point of
    the supplied history; *_series methods answer for every prefix.
    """

    @staticmethod
    def calculate_sma(data: Sequence[float], period: int) -> Optional[float]:
        """
        Simple moving average of the last `period` values.

        Returns None when fewer than `period` values are available.
        """
        _check_period("SMA", period)
        if len(data) < period:
            return None
        window = list(data[len(data) - period:])
        return sum(window) / period

    @staticmethod
    def sma_series(data: Sequence[float], period: int) -> List[Optional[float]]:
        """SMA for every prefix of `data`; None during the warm-up."""
        _check_period("SMA", period)
        values = list(data)
        result: List[Optional[float]] = []
        for i in range(len(values)):
            if i + 1 < period:
                result.append(None)
            else:
                result.append(sum(values[i + 1 - period:i + 1]) / period)
        return result

    @staticmethod
    def calculate_rsi(closes: Sequence[float], period: int = 14) -> Optional[float]:
        """
        Calculate Relative Strength Index (RSI).

        The first average gain/loss is the plain mean of the first `period`
        differences; every later difference is folded in with Wilder's
        recurrence avg = (avg * (period - 1) + current) / period. The whole
        history is replayed on each call.

        Args:
            closes: Close prices, oldest first
            period: RSI period (default: 14)

        Returns:
            RSI in [0, 100], 100 when there were no losses, or None when
            fewer than period + 1 closes are available
        """
        _check_period("RSI", period)
        if len(closes) < period + 1:
            return None
        return IndicatorCalculator.rsi_series(closes, period)[-1]

    @staticmethod
    def rsi_series(closes: Sequence[float], period: int = 14) -> List[Optional[float]]:
        """
        RSI for every prefix of `closes`.

        Replaying the recurrence over prefix k performs the same float
        operations, in the same order, as the first k steps of this single
        pass, so each entry equals calculate_rsi(closes[:k + 1]) exactly.
        """
        _check_period("RSI", period)
        values = list(closes)
        result: List[Optional[float]] = [None] * len(values)
        if len(values) < period + 1:
            return result

        gains = 0.0
        losses = 0.0
        for i in range(1, period + 1):
            diff = values[i] - values[i - 1]
            if diff >= 0:
                gains += diff
            else:
                losses += abs(diff)

        avg_gain = gains / period
        avg_loss = losses / period
        result[period] = _rsi_from_averages(avg_gain, avg_loss)

        for i in range(period + 1, len(values)):
            diff = values[i] - values[i - 1]
            current_gain = diff if diff > 0 else 0.0
            current_loss = abs(diff) if diff < 0 else 0.0

            avg_gain = (avg_gain * (period - 1) + current_gain) / period
            avg_loss = (avg_loss * (period - 1) + current_loss) / period
            result[i] = _rsi_from_averages(avg_gain, avg_loss)

        return result

    @staticmethod
    def calculate_ema(data: Sequence[float], period: int) -> List[float]:
        """
        Calculate Exponential Moving Average.

        Seeded with the first value and smoothed with k = 2 / (period + 1).
        Produces one value per input, with no warm-up gap.

        Args:
            data: Values, oldest first
            period: EMA period

        Returns:
            List of EMA values (empty for empty input)
        """
        _check_period("EMA", period)
        values = list(data)
        if not values:
            return []

        k = 2 / (period + 1)
        ema = [values[0]]
        for value in values[1:]:
            ema.append(value * k + ema[-1] * (1 - k))
        return ema

    @staticmethod
    def calculate_macd(
        closes: Sequence[float],
        fast_period: int = 12,
        slow_period: int = 26,
        signal_period: int = 9
    ) -> MACDSeries:
        """
        Calculate MACD.

        macd_line = EMA(fast) - EMA(slow), signal_line = EMA(macd_line,
        signal), histogram = macd_line - signal_line, all pointwise.
        """
        fast = IndicatorCalculator.calculate_ema(closes, fast_period)
        slow = IndicatorCalculator.calculate_ema(closes, slow_period)

        macd_line = [f - s for f, s in zip(fast, slow)]
        signal_line = IndicatorCalculator.calculate_ema(macd_line, signal_period)
        histogram = [m - s for m, s in zip(macd_line, signal_line)]

        return MACDSeries(
            macd_line=macd_line,
            signal_line=signal_line,
            histogram=histogram
        )

    @staticmethod
    def true_range(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float]
    ) -> List[float]:
        """
        True Range per bar.

        The first bar has no previous close, so its range is high - low.
        Later bars take the greatest of:
        1. Current high - Current low
        2. Abs(Current high - Previous close)
        3. Abs(Current low - Previous close)
        """
        if not len(highs) == len(lows) == len(closes):
            raise IndicatorCalculationError(
                "ATR",
                f"length mismatch: highs={len(highs)} lows={len(lows)} closes={len(closes)}"
            )

        ranges = []
        for i in range(len(highs)):
            high_low = highs[i] - lows[i]
            if i == 0:
                ranges.append(high_low)
                continue
            prev_close = closes[i - 1]
            ranges.append(max(high_low, abs(highs[i] - prev_close), abs(lows[i] - prev_close)))
        return ranges

    @staticmethod
    def calculate_atr(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = 14
    ) -> List[float]:
        """
        Calculate Average True Range (ATR).

        A simple running average of True Range: before `period` ranges are
        available the average covers all of them; afterwards a sliding
        window of `period` ranges is kept by subtracting the range that
        leaves and adding the one that enters.

        Args:
            highs, lows, closes: Bar values, oldest first
            period: ATR period (default: 14)

        Returns:
            List of ATR values, one per bar
        """
        _check_period("ATR", period)
        ranges = IndicatorCalculator.true_range(highs, lows, closes)

        atr = []
        window_sum = 0.0
        for i, tr in enumerate(ranges):
            if i < period:
                window_sum += tr
                atr.append(window_sum / (i + 1))
            else:
                window_sum = window_sum - ranges[i - period] + tr
                atr.append(window_sum / period)
        return atr

    @staticmethod
    def annotate_bars(
        bars: Sequence[Bar],
        config: Optional[IndicatorConfig] = None
    ) -> List[AnnotatedBar]:
        """
        Attach indicator values to every bar.

        The input is not modified. ma50/ma200 are None until their period is
        reached, rsi until period + 1 closes exist; macd and atr are defined
        from the first bar.

        Args:
            bars: Bars, oldest first
            config: Indicator periods (defaults to 50/200/14/14/12-26-9)

        Returns:
            New list of AnnotatedBar, same length and order
        """
        config = config or IndicatorConfig()
        bars = list(bars)
        if not bars:
            return []

        closes = [bar.close for bar in bars]
        highs = [bar.high for bar in bars]
        lows = [bar.low for bar in bars]

        ma_fast = IndicatorCalculator.sma_series(closes, config.ma_fast)
        ma_slow = IndicatorCalculator.sma_series(closes, config.ma_slow)
        rsi = IndicatorCalculator.rsi_series(closes, config.rsi_period)
        macd = IndicatorCalculator.calculate_macd(
            closes, config.macd_fast, config.macd_slow, config.macd_signal
        )
        atr = IndicatorCalculator.calculate_atr(highs, lows, closes, config.atr_period)

        annotated = [
            AnnotatedBar.from_bar(
                bar,
                ma50=ma_fast[i],
                ma200=ma_slow[i],
                rsi=rsi[i],
                macd=macd.at(i),
                atr=atr[i],
            )
            for i, bar in enumerate(bars)
        ]

        logger.debug(
            LogMessages.INDICATORS_CALCULATED,
            bars=len(annotated),
            missing_ma_slow=sum(1 for value in ma_slow if value is None),
            missing_rsi=sum(1 for value in rsi if value is None)
        )

        return annotated

    @staticmethod
    def calculate_all(df: pd.DataFrame, config: Optional[IndicatorConfig] = None) -> pd.DataFrame:
        """
        Calculate all indicators and add them to a dataframe.

        Args:
            df: DataFrame with OHLC data (columns: open, high, low, close)
            config: Configuration with indicator periods

        Returns:
            Copy of df with ma50, ma200, rsi, macd, macd_signal,
            macd_histogram and atr columns (NaN during warm-up)

        Raises:
            MarketDataError: If required columns are missing
        """
        config = config or IndicatorConfig()
        IndicatorCalculator.validate_dataframe(df)
        df = df.copy()

        closes = df['close'].astype(float).tolist()
        highs = df['high'].astype(float).tolist()
        lows = df['low'].astype(float).tolist()

        def as_column(values: List[Optional[float]]) -> np.ndarray:
            return np.array([np.nan if v is None else v for v in values], dtype=float)

        macd = IndicatorCalculator.calculate_macd(
            closes, config.macd_fast, config.macd_slow, config.macd_signal
        )

        df['ma50'] = as_column(IndicatorCalculator.sma_series(closes, config.ma_fast))
        df['ma200'] = as_column(IndicatorCalculator.sma_series(closes, config.ma_slow))
        df['rsi'] = as_column(IndicatorCalculator.rsi_series(closes, config.rsi_period))
        df['macd'] = as_column(macd.macd_line)
        df['macd_signal'] = as_column(macd.signal_line)
        df['macd_histogram'] = as_column(macd.histogram)
        df['atr'] = as_column(
            IndicatorCalculator.calculate_atr(highs, lows, closes, config.atr_period)
        )

        logger.debug(
            LogMessages.INDICATORS_CALCULATED,
            bars=len(df),
            nan_ma200=int(df['ma200'].isna().sum()),
            nan_rsi=int(df['rsi'].isna().sum())
        )

        return df

    @staticmethod
    def validate_dataframe(df: pd.DataFrame, symbol: str = "") -> None:
        """
        Validate that dataframe has the OHLC columns indicators need.

        Raises:
            MarketDataError: If columns are missing
        """
        required_columns = ['open', 'high', 'low', 'close']
        missing = [col for col in required_columns if col not in df.columns]

        if missing:
            raise MarketDataError(
                f"Missing required columns{' for ' + symbol if symbol else ''}: {missing}",
                {"missing": missing}
            )

        if len(df) and (df[['open', 'high', 'low', 'close']] < 0).any().any():
            logger.warning("Negative prices detected", symbol=symbol)


# Module-level aliases so callers can use plain functions
calculate_sma = IndicatorCalculator.calculate_sma
calculate_rsi = IndicatorCalculator.calculate_rsi
calculate_ema = IndicatorCalculator.calculate_ema
calculate_macd = IndicatorCalculator.calculate_macd
calculate_atr = IndicatorCalculator.calculate_atr
annotate_bars = IndicatorCalculator.annotate_bars
