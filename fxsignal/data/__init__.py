"""
Data Module

Synthetic bar generation and recorded bar loading.
"""

from fxsignal.data.market_data import (
    PAIR_CONFIGS,
    PairConfig,
    SyntheticDataGenerator,
    generate_market_data,
    bars_from_dataframe,
    bars_to_dataframe,
    load_bars_csv,
    price_precision,
    format_price,
)

__all__ = [
    'PAIR_CONFIGS',
    'PairConfig',
    'SyntheticDataGenerator',
    'generate_market_data',
    'bars_from_dataframe',
    'bars_to_dataframe',
    'load_bars_csv',
    'price_precision',
    'format_price',
]
