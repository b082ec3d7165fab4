"""
Market Data

Bar sources that feed the engine:
- SyntheticDataGenerator: seeded random-walk bars for a currency pair
- CSV / DataFrame conversion for recorded bars

The engine never calls into this module; it only consumes the bars.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from fxsignal.core.exceptions import MarketDataError
from fxsignal.core.logging_config import get_logger, LogMessages
from fxsignal.strategies.models import Bar

logger = get_logger("market_data")


@dataclass(frozen=True)
class PairConfig:
    """Random-walk parameters for a pair"""
    initial_price: float
    volatility: float


PAIR_CONFIGS: Dict[str, PairConfig] = {
    "EUR/USD": PairConfig(initial_price=1.1000, volatility=0.0015),
    "GBP/USD": PairConfig(initial_price=1.2700, volatility=0.0020),
    "USD/JPY": PairConfig(initial_price=148.50, volatility=0.1500),
    "USD/CHF": PairConfig(initial_price=0.8850, volatility=0.0012),
    "AUD/USD": PairConfig(initial_price=0.6550, volatility=0.0010),
    "USD/CAD": PairConfig(initial_price=1.3500, volatility=0.0018),
}

DEFAULT_PAIR = "EUR/USD"
REQUIRED_COLUMNS = ["open", "high", "low", "close"]


def price_precision(pair: str) -> int:
    """Decimal places used to display prices for a pair."""
    return 3 if "JPY" in pair.upper() else 5


def format_price(price: Optional[float], pair: str) -> str:
    if price is None:
        return "-"
    return f"{price:.{price_precision(pair)}f}"


class SyntheticDataGenerator:
    """
    Generates hourly random-walk bars for a currency pair.

    Each step moves the price by (u - 0.5) * volatility with u uniform in
    [0, 1); a price that falls below 0.0001 is reset to the initial price.
    Highs and lows extend past the open/close by up to 30% of the
    volatility. The last bar is stamped one hour before `end_time`.
    """

    def __init__(
        self,
        pair: str = DEFAULT_PAIR,
        count: int = 300,
        warmup: int = 200,
        seed: Optional[int] = None,
        end_time: Optional[datetime] = None
    ):
        """
        Initialize generator.

        Args:
            pair: Pair name; unknown pairs use the EUR/USD parameters
            count: Number of bars after the warm-up
            warmup: Extra leading bars so indicators are defined on the
                last `count` bars
            seed: Seed for numpy's random generator
            end_time: Timestamp anchor (defaults to now, UTC)
        """
        self.pair = pair
        self.count = count
        self.warmup = warmup
        self.config = PAIR_CONFIGS.get(pair, PAIR_CONFIGS[DEFAULT_PAIR])
        self.rng = np.random.default_rng(seed)
        self.end_time = end_time or datetime.now(timezone.utc)

    def generate(self) -> List[Bar]:
        """
        Generate synthetic bars.

        Returns:
            warmup + count bars, oldest first
        """
        n_bars = self.count + self.warmup
        if n_bars <= 0:
            return []

        initial_price = self.config.initial_price
        volatility = self.config.volatility

        # One extra price so the first bar has a previous close to open at
        prices = np.zeros(n_bars + 1)
        price = initial_price
        prices[0] = price
        for i in range(1, n_bars + 1):
            price += (self.rng.random() - 0.5) * volatility
            if price < 0.0001:
                price = initial_price
            prices[i] = price

        high_pad = self.rng.random(n_bars) * (volatility * 0.3)
        low_pad = self.rng.random(n_bars) * (volatility * 0.3)
        volumes = np.floor(self.rng.random(n_bars) * 1000 + 500)

        bars = []
        for i in range(n_bars):
            open_price = float(prices[i])
            close = float(prices[i + 1])
            bars.append(Bar(
                timestamp=self.end_time - timedelta(hours=n_bars - i),
                open=open_price,
                high=max(open_price, close) + float(high_pad[i]),
                low=min(open_price, close) - float(low_pad[i]),
                close=close,
                volume=float(volumes[i]),
            ))

        logger.info(
            LogMessages.DATA_GENERATED,
            pair=self.pair,
            bars=len(bars),
            start_price=format_price(bars[0].close, self.pair),
            end_price=format_price(bars[-1].close, self.pair)
        )

        return bars


def generate_market_data(
    pair: str = DEFAULT_PAIR,
    count: int = 300,
    warmup: int = 200,
    seed: Optional[int] = None
) -> List[Bar]:
    """Convenience function to generate synthetic bars."""
    return SyntheticDataGenerator(pair=pair, count=count, warmup=warmup, seed=seed).generate()


def bars_from_dataframe(df: pd.DataFrame) -> List[Bar]:
    """
    Convert an OHLCV DataFrame to bars.

    The timestamp comes from a 'timestamp' or 'time' column, or from a
    DatetimeIndex. A missing volume column means zero volume.

    Raises:
        MarketDataError: If OHLC or timestamp data is missing or malformed
    """
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise MarketDataError(f"Missing required columns: {missing}", {"missing": missing})

    time_column = next((col for col in ("timestamp", "time") if col in df.columns), None)
    if time_column is not None:
        try:
            timestamps = pd.to_datetime(df[time_column], utc=True)
        except (ValueError, TypeError) as e:
            raise MarketDataError(
                f"Unparseable values in '{time_column}' column",
                {"column": time_column, "error": str(e)}
            ) from e
    elif isinstance(df.index, pd.DatetimeIndex):
        timestamps = df.index.to_series()
    else:
        raise MarketDataError("No timestamp column or DatetimeIndex found")

    numeric_columns = REQUIRED_COLUMNS + (["volume"] if "volume" in df.columns else [])
    try:
        values = df[numeric_columns].apply(pd.to_numeric, errors="raise")
    except (ValueError, TypeError) as e:
        raise MarketDataError("Non-numeric OHLCV values", {"error": str(e)}) from e

    volumes = values["volume"] if "volume" in values.columns else pd.Series(0.0, index=df.index)

    return [
        Bar(
            timestamp=ts.to_pydatetime(),
            open=float(o),
            high=float(h),
            low=float(lo),
            close=float(c),
            volume=float(v),
        )
        for ts, o, h, lo, c, v in zip(
            timestamps, values["open"], values["high"], values["low"], values["close"], volumes
        )
    ]


def bars_to_dataframe(bars: Sequence[Bar]) -> pd.DataFrame:
    """Convert bars to a DataFrame indexed by timestamp."""
    df = pd.DataFrame(
        [
            {
                "timestamp": bar.timestamp,
                "open": bar.open,
                "high": bar.high,
                "low": bar.low,
                "close": bar.close,
                "volume": bar.volume,
            }
            for bar in bars
        ],
        columns=["timestamp", "open", "high", "low", "close", "volume"],
    )
    return df.set_index("timestamp")


def load_bars_csv(path: Union[str, Path]) -> List[Bar]:
    """
    Load bars from a CSV file with a timestamp/time column and OHLC(V).

    Rows are returned in file order; the engine expects them oldest first.

    Raises:
        MarketDataError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        raise MarketDataError(f"Bar file not found: {path}", {"path": str(path)})

    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise MarketDataError(f"Failed to parse bar file: {path}", {"error": str(e)}) from e

    bars = bars_from_dataframe(df)
    logger.info(LogMessages.DATA_LOADED, path=str(path), bars=len(bars))
    return bars
