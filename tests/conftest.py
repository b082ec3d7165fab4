"""Shared fixtures."""

from typing import List

import pytest

from fxsignal.data.market_data import generate_market_data
from fxsignal.strategies.indicators import IndicatorCalculator
from fxsignal.strategies.models import AnnotatedBar, Bar


@pytest.fixture
def synthetic_bars() -> List[Bar]:
    return generate_market_data(
        pair="EUR/USD",
        count=300,
        warmup=200,
        seed=42,
    )


@pytest.fixture
def annotated_bars(synthetic_bars) -> List[AnnotatedBar]:
    return IndicatorCalculator.annotate_bars(synthetic_bars)
