import math

import numpy as np
import pandas as pd
import pytest

from fxsignal.core.exceptions import IndicatorCalculationError, MarketDataError
from fxsignal.data.market_data import bars_to_dataframe
from fxsignal.strategies.indicators import (
    IndicatorCalculator,
    IndicatorConfig,
    annotate_bars,
    calculate_atr,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
)

from factories import make_bars


# --- SMA ---------------------------------------------------------------------

def test_sma_is_none_below_period():
    assert calculate_sma([1.0, 2.0, 3.0], 4) is None
    assert calculate_sma([], 1) is None


def test_sma_of_exact_period_is_mean_of_whole_sequence():
    data = [1.1012, 1.1034, 1.0998, 1.1051, 1.1007]
    assert calculate_sma(data, len(data)) == sum(data) / len(data)


def test_sma_uses_only_last_period_values():
    assert calculate_sma([100.0, 1.0, 2.0, 3.0], 3) == 2.0


def test_sma_series_matches_scalar_on_every_prefix():
    data = [float(x) for x in range(1, 21)]
    series = IndicatorCalculator.sma_series(data, 5)
    for i in range(len(data)):
        assert series[i] == calculate_sma(data[:i + 1], 5)


def test_non_positive_period_raises():
    with pytest.raises(IndicatorCalculationError):
        calculate_sma([1.0, 2.0], 0)
    with pytest.raises(IndicatorCalculationError):
        calculate_ema([1.0, 2.0], -1)


# --- RSI ---------------------------------------------------------------------

def test_rsi_needs_period_plus_one_closes():
    closes = [float(x) for x in range(14)]
    assert calculate_rsi(closes, 14) is None
    assert calculate_rsi(closes + [14.0], 14) is not None


def test_rsi_is_100_without_losses():
    rising = [1.0 + i * 0.001 for i in range(30)]
    assert calculate_rsi(rising) == 100.0

    flat = [1.1] * 30
    assert calculate_rsi(flat) == 100.0


def test_rsi_is_zero_without_gains():
    falling = [2.0 - i * 0.01 for i in range(30)]
    assert calculate_rsi(falling) == 0.0


def test_rsi_applies_wilder_smoothing_after_seed():
    # seed averages 0.5 / 0.5, then one +1 step: gain 0.75, loss 0.25
    assert calculate_rsi([1.0, 2.0, 1.0, 2.0], period=2) == 75.0


def test_rsi_stays_within_bounds(annotated_bars):
    values = [bar.rsi for bar in annotated_bars if bar.rsi is not None]
    assert values
    assert all(0.0 <= value <= 100.0 for value in values)


def test_rsi_series_is_bit_identical_to_replay(synthetic_bars):
    closes = [bar.close for bar in synthetic_bars]
    series = IndicatorCalculator.rsi_series(closes, 14)
    for end in (14, 15, 50, 199, 200, len(closes) - 1):
        assert series[end] == calculate_rsi(closes[:end + 1], 14)
    assert series[13] is None


# --- EMA / MACD --------------------------------------------------------------

def test_ema_seeds_with_first_value_and_has_no_gap():
    assert calculate_ema([2.0, 4.0, 6.0], 3) == [2.0, 3.0, 4.5]


def test_ema_of_empty_input_is_empty():
    assert calculate_ema([], 9) == []


def test_macd_histogram_is_line_minus_signal():
    closes = [1.1 + 0.001 * math.sin(i / 3) for i in range(80)]
    macd = calculate_macd(closes)

    assert len(macd) == len(closes)
    for line, signal, histogram in zip(macd.macd_line, macd.signal_line, macd.histogram):
        assert histogram == line - signal


def test_macd_is_flat_for_constant_prices():
    macd = calculate_macd([1.25] * 40)
    assert all(abs(value) < 1e-12 for value in macd.macd_line)
    assert all(abs(value) < 1e-12 for value in macd.histogram)


def test_macd_turns_bullish_on_rally():
    closes = [1.1] * 30 + [1.1 + 0.001 * i for i in range(1, 20)]
    value = calculate_macd(closes).at(-1)
    assert value.is_bullish
    assert not value.is_bearish


# --- ATR ---------------------------------------------------------------------

def test_atr_averages_available_ranges_then_slides():
    highs = [3.0, 4.0, 6.0]
    lows = [1.0, 2.0, 3.0]
    closes = [2.0, 3.0, 5.0]
    # true ranges 2, 2, 3
    assert calculate_atr(highs, lows, closes, period=2) == [2.0, 2.0, 2.5]


def test_true_range_uses_previous_close_on_gaps():
    ranges = IndicatorCalculator.true_range([2.0, 5.0], [1.0, 4.0], [1.5, 4.5])
    assert ranges == [1.0, 3.5]


def test_atr_is_non_negative(synthetic_bars):
    atr = calculate_atr(
        [b.high for b in synthetic_bars],
        [b.low for b in synthetic_bars],
        [b.close for b in synthetic_bars],
    )
    assert len(atr) == len(synthetic_bars)
    assert all(value >= 0 for value in atr)


def test_atr_rejects_mismatched_lengths():
    with pytest.raises(IndicatorCalculationError):
        calculate_atr([1.0, 2.0], [0.5], [1.0, 1.5])


# --- Annotation --------------------------------------------------------------

def test_annotation_warm_up_boundaries(annotated_bars):
    for i, bar in enumerate(annotated_bars):
        assert (bar.ma50 is not None) == (i >= 49)
        assert (bar.ma200 is not None) == (i >= 199)
        assert (bar.rsi is not None) == (i >= 14)
        assert bar.macd is not None
        assert bar.atr is not None


def test_annotation_matches_scalar_indicators(synthetic_bars, annotated_bars):
    closes = [bar.close for bar in synthetic_bars]
    last = annotated_bars[-1]

    assert last.ma50 == calculate_sma(closes, 50)
    assert last.ma200 == calculate_sma(closes, 200)
    assert last.rsi == calculate_rsi(closes, 14)
    assert last.macd.histogram == last.macd.macd_line - last.macd.signal_line


def test_annotation_keeps_prices_and_order(synthetic_bars, annotated_bars):
    assert len(annotated_bars) == len(synthetic_bars)
    for raw, annotated in zip(synthetic_bars, annotated_bars):
        assert annotated.timestamp == raw.timestamp
        assert annotated.close == raw.close


def test_annotation_honours_custom_periods():
    bars = make_bars([1.0 + 0.01 * i for i in range(10)])
    annotated = annotate_bars(bars, IndicatorConfig(ma_fast=3, ma_slow=5, rsi_period=4))

    assert annotated[1].ma50 is None
    assert annotated[2].ma50 == pytest.approx(1.01)
    assert annotated[3].ma200 is None
    assert annotated[4].ma200 is not None
    assert annotated[3].rsi is None
    assert annotated[4].rsi == 100.0


def test_annotate_empty_sequence():
    assert annotate_bars([]) == []


# --- DataFrame form ----------------------------------------------------------

def test_calculate_all_adds_indicator_columns(synthetic_bars):
    df = IndicatorCalculator.calculate_all(bars_to_dataframe(synthetic_bars))

    for column in ["ma50", "ma200", "rsi", "macd", "macd_signal", "macd_histogram", "atr"]:
        assert column in df.columns
    assert int(df["ma200"].isna().sum()) == 199
    assert int(df["rsi"].isna().sum()) == 14
    np.testing.assert_array_equal(
        df["macd_histogram"].to_numpy(),
        (df["macd"] - df["macd_signal"]).to_numpy(),
    )


def test_calculate_all_does_not_modify_input(synthetic_bars):
    source = bars_to_dataframe(synthetic_bars)
    IndicatorCalculator.calculate_all(source)
    assert "ma50" not in source.columns


def test_calculate_all_requires_ohlc_columns():
    with pytest.raises(MarketDataError):
        IndicatorCalculator.calculate_all(pd.DataFrame({"close": [1.0, 2.0]}))
