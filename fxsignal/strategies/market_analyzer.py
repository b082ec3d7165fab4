"""
Adaptive Market Analyzer

Classifies the latest bar into a market condition (trending, ranging or
volatile) and picks the signal rules that suit that condition:
- TRENDING: follow the moving-average trend when momentum agrees
- RANGING: fade RSI extremes (mean reversion)
- VOLATILE: stand aside unless RSI is at an extreme

A signal is only actionable when its confidence reaches the gate (75);
below that the signal is forced to HOLD while the confidence is still
reported.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from fxsignal.core.logging_config import get_logger, LogMessages
from fxsignal.strategies.models import (
    AnnotatedBar,
    Crossover,
    MACDValue,
    MarketAnalysis,
    MarketCondition,
    SignalType,
    Trend,
)


@dataclass
class AnalyzerConfig:
    """Thresholds for the adaptive classifier"""
    # Condition classification (fractions of price)
    volatile_atr_pct: float = 0.0025
    trending_spread_pct: float = 0.0005
    trend_spread_pct: float = 0.0002

    # Momentum
    strong_histogram: float = 0.0001

    # Confidence
    base_confidence: int = 50
    actionable_confidence: int = 75
    max_confidence: int = 99

    # Trending rules
    trend_rsi_long_max: float = 60.0
    trend_rsi_short_min: float = 40.0
    trend_rsi_long_bonus: float = 45.0
    trend_rsi_short_bonus: float = 55.0

    # Ranging rules
    range_oversold: float = 30.0
    range_overbought: float = 70.0

    # Volatile rules
    volatile_penalty: int = 20
    volatile_oversold: float = 25.0
    volatile_overbought: float = 75.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def detect_crossover(
    current: AnnotatedBar,
    previous: Optional[AnnotatedBar]
) -> Optional[Crossover]:
    """Golden/death cross between two adjacent bars, if any."""
    if previous is None or not (current.has_moving_averages and previous.has_moving_averages):
        return None
    if previous.ma50 < previous.ma200 and current.ma50 > current.ma200:
        return Crossover.GOLDEN_CROSS
    if previous.ma50 > previous.ma200 and current.ma50 < current.ma200:
        return Crossover.DEATH_CROSS
    return None


class MarketAnalyzer:
    """
    Produces a MarketAnalysis from the two most recent annotated bars.

    Stateless apart from its configuration and logger; every call is a
    fresh computation.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None, logger=None):
        self.config = config or AnalyzerConfig()
        self.logger = logger or get_logger("market_analyzer")

    def analyze(
        self,
        current: AnnotatedBar,
        previous: Optional[AnnotatedBar],
        pair: str
    ) -> MarketAnalysis:
        """
        Classify the market and generate a signal.

        Args:
            current: Latest annotated bar
            previous: Bar before it (used for crossover context only)
            pair: Instrument identifier, used as a label

        Returns:
            MarketAnalysis; the degenerate HOLD/0 form when the moving
            averages are not yet available or the close is not a
            positive finite price
        """
        if not current.has_moving_averages or not math.isfinite(current.close) \
                or current.close <= 0:
            self.logger.debug(LogMessages.ANALYSIS_DEGENERATE, pair=pair, price=current.close)
            return self._degenerate(current, pair)

        cfg = self.config
        price = current.close
        ma50 = current.ma50
        ma200 = current.ma200
        rsi = current.rsi if current.rsi is not None else 50.0
        atr = current.atr if current.atr is not None else 0.0

        spread_pct = abs(ma50 - ma200) / price
        volatility_pct = atr / price

        condition = self.classify_condition(spread_pct, volatility_pct)
        trend = self.classify_trend(ma50, ma200, spread_pct)

        signal, raw_confidence = self._generate_signal(
            condition, trend, price, ma50, rsi, current.macd
        )

        if raw_confidence < cfg.actionable_confidence:
            signal = SignalType.HOLD

        confidence = min(cfg.max_confidence, max(0, _round_half_up(raw_confidence)))

        analysis = MarketAnalysis(
            pair=pair,
            current_price=price,
            ma50=ma50,
            ma200=ma200,
            rsi=current.rsi,
            macd=current.macd,
            atr=current.atr,
            trend=trend,
            market_condition=condition,
            signal=signal,
            confidence=confidence,
            crossover=detect_crossover(current, previous),
        )

        self.logger.debug(
            LogMessages.ANALYSIS_COMPLETED,
            pair=pair,
            condition=condition.value,
            trend=trend.value,
            signal=signal.value,
            confidence=confidence
        )

        return analysis

    def classify_condition(self, spread_pct: float, volatility_pct: float) -> MarketCondition:
        """Volatility dominates; otherwise a wide MA spread means trending."""
        if volatility_pct > self.config.volatile_atr_pct:
            return MarketCondition.VOLATILE
        if spread_pct > self.config.trending_spread_pct:
            return MarketCondition.TRENDING
        return MarketCondition.RANGING

    def classify_trend(self, ma50: float, ma200: float, spread_pct: float) -> Trend:
        if spread_pct > self.config.trend_spread_pct:
            if ma50 > ma200:
                return Trend.BULLISH
            if ma50 < ma200:
                return Trend.BEARISH
        return Trend.NEUTRAL

    def _generate_signal(
        self,
        condition: MarketCondition,
        trend: Trend,
        price: float,
        ma50: float,
        rsi: float,
        macd: Optional[MACDValue]
    ) -> Tuple[SignalType, float]:
        """Apply the rule set for the condition; returns (signal, raw confidence)."""
        cfg = self.config
        confidence: float = cfg.base_confidence
        signal = SignalType.HOLD

        momentum_bullish = macd is not None and macd.is_bullish
        momentum_bearish = macd is not None and macd.is_bearish
        strong = macd is not None and macd.is_strong(cfg.strong_histogram)

        if condition == MarketCondition.TRENDING:
            if trend == Trend.BULLISH:
                if (rsi < cfg.trend_rsi_long_max and momentum_bullish) or \
                        (price > ma50 and momentum_bullish and strong):
                    signal = SignalType.BUY
                    confidence += 25
                    if momentum_bullish and strong:
                        confidence += 10
                    if rsi < cfg.trend_rsi_long_bonus:
                        confidence += 10
                    if price > ma50:
                        confidence += 5

            elif trend == Trend.BEARISH:
                if (rsi > cfg.trend_rsi_short_min and momentum_bearish) or \
                        (price < ma50 and momentum_bearish and strong):
                    signal = SignalType.SELL
                    confidence += 25
                    if momentum_bearish and strong:
                        confidence += 10
                    if rsi > cfg.trend_rsi_short_bonus:
                        confidence += 10
                    if price < ma50:
                        confidence += 5

        elif condition == MarketCondition.RANGING:
            # Mean reversion: the further past the band, the higher the confidence
            if rsi < cfg.range_oversold and momentum_bullish:
                signal = SignalType.BUY
                confidence += 20 + (cfg.range_oversold - rsi)
            elif rsi > cfg.range_overbought and momentum_bearish:
                signal = SignalType.SELL
                confidence += 20 + (rsi - cfg.range_overbought)

        else:
            confidence -= cfg.volatile_penalty
            if rsi < cfg.volatile_oversold and momentum_bullish:
                signal = SignalType.BUY
                confidence += 30
            elif rsi > cfg.volatile_overbought and momentum_bearish:
                signal = SignalType.SELL
                confidence += 30

        return signal, confidence

    @staticmethod
    def _degenerate(current: AnnotatedBar, pair: str) -> MarketAnalysis:
        return MarketAnalysis(
            pair=pair,
            current_price=current.close,
            ma50=current.ma50,
            ma200=current.ma200,
            rsi=current.rsi,
            macd=current.macd,
            atr=current.atr,
            trend=Trend.NEUTRAL,
            market_condition=MarketCondition.RANGING,
            signal=SignalType.HOLD,
            confidence=0,
        )


def analyze_market(
    current: AnnotatedBar,
    previous: Optional[AnnotatedBar],
    pair: str,
    config: Optional[AnalyzerConfig] = None,
    logger=None
) -> MarketAnalysis:
    """Convenience wrapper around MarketAnalyzer.analyze."""
    return MarketAnalyzer(config, logger).analyze(current, previous, pair)
