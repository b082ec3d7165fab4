"""
Backtesting Engine

Replays an annotated bar sequence bar-by-bar for one strategy, holding at
most one position at a time, and reports realized performance.

Features:
- MA crossover, RSI and combined trend/RSI strategies
- Reversal on opposite signal (close the open side, open the new one)
- Realized-only P&L: a position still open at the end is reported but
  never marked to market
- Running peak-to-trough drawdown of the balance
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from fxsignal.core.exceptions import InvalidSettingsError, UnknownStrategyError
from fxsignal.core.logging_config import get_logger, LogMessages
from fxsignal.strategies.models import AnnotatedBar, SignalType, StrategyType, Trend


class PositionSide(Enum):
    """Side of an open position"""
    LONG = "LONG"
    SHORT = "SHORT"


@dataclass(frozen=True)
class OpenPosition:
    """
    An open position. Being flat is represented by None, so a side
    without an entry price cannot exist.
    """
    side: PositionSide
    entry_price: float
    entry_time: datetime


@dataclass
class BacktestConfig:
    """Configuration for backtesting"""
    initial_balance: float = 10000.0
    # Currency units per unit of price movement (1 pip on a 4-decimal pair = 1)
    pnl_multiplier: float = 10000.0

    # Exit on an adverse MA crossover in the COMBINED strategy
    combined_cross_exit: bool = False

    # RSI bands
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0

    def __post_init__(self):
        problems = []
        if self.initial_balance <= 0:
            problems.append(f"initial_balance must be > 0, got {self.initial_balance}")
        if self.pnl_multiplier <= 0:
            problems.append(f"pnl_multiplier must be > 0, got {self.pnl_multiplier}")
        if problems:
            raise InvalidSettingsError(problems)

    @classmethod
    def from_settings(cls, settings) -> "BacktestConfig":
        return cls(
            initial_balance=settings.initial_balance,
            pnl_multiplier=settings.pnl_multiplier,
        )


@dataclass(frozen=True)
class BacktestTrade:
    """A closed trade in the ledger"""
    time: datetime
    direction: SignalType  # signal that closed the position
    price: float           # exit price
    profit: float
    entry_price: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "direction": self.direction.value,
            "price": self.price,
            "profit": self.profit,
            "entry_price": self.entry_price,
        }


@dataclass
class BacktestResult:
    """Results from a backtest run"""
    strategy: StrategyType
    initial_balance: float = 0.0
    final_balance: float = 0.0

    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0

    profit: float = 0.0
    max_drawdown: float = 0.0  # percent

    history: List[BacktestTrade] = field(default_factory=list)
    open_position: Optional[OpenPosition] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "initial_balance": self.initial_balance,
            "final_balance": self.final_balance,
            "total_trades": self.total_trades,
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": self.win_rate,
            "profit": self.profit,
            "max_drawdown": self.max_drawdown,
            "history": [trade.to_dict() for trade in self.history],
            "open_position": None if self.open_position is None else {
                "side": self.open_position.side.value,
                "entry_price": self.open_position.entry_price,
                "entry_time": self.open_position.entry_time.isoformat(),
            },
        }


def parse_strategy(strategy: Union[StrategyType, str]) -> StrategyType:
    """Accept a StrategyType or its name (case-insensitive)."""
    if isinstance(strategy, StrategyType):
        return strategy
    try:
        return StrategyType(str(strategy).strip().upper())
    except ValueError:
        raise UnknownStrategyError(strategy, [s.value for s in StrategyType]) from None


class BacktestEngine:
    """
    Position-based backtest simulator.

    The engine keeps no state between runs: run() builds a fresh
    simulation every time, so repeated runs on the same input give
    identical results.
    """

    def __init__(self, config: Optional[BacktestConfig] = None, logger=None):
        """
        Initialize backtesting engine.

        Args:
            config: Backtest configuration
            logger: structlog logger (defaults to the backtest_engine logger)
        """
        self.config = config or BacktestConfig()
        self.logger = logger or get_logger("backtest_engine")

    def run(
        self,
        bars: Sequence[AnnotatedBar],
        strategy: Union[StrategyType, str]
    ) -> BacktestResult:
        """
        Run one strategy over an annotated bar sequence.

        Args:
            bars: Annotated bars, oldest first
            strategy: Strategy selector

        Returns:
            BacktestResult with the closed-trade ledger
        """
        strategy = parse_strategy(strategy)
        cfg = self.config

        self.logger.info(LogMessages.BACKTEST_STARTED, strategy=strategy.value, bars=len(bars))

        balance = cfg.initial_balance
        peak_balance = balance
        max_drawdown = 0.0
        wins = 0
        losses = 0
        position: Optional[OpenPosition] = None
        history: List[BacktestTrade] = []

        for i in range(1, len(bars)):
            current = bars[i]
            prev = bars[i - 1]

            if current.ma50 is None or current.ma200 is None or current.rsi is None \
                    or prev.ma50 is None:
                continue

            signal = self._strategy_signal(strategy, current, prev, position)

            if signal == SignalType.BUY and not self._is_side(position, PositionSide.LONG):
                if position is not None:
                    pnl = (position.entry_price - current.close) * cfg.pnl_multiplier
                    trade = self._close(position, current, SignalType.BUY, pnl)
                    history.append(trade)
                    balance += pnl
                    if pnl > 0:
                        wins += 1
                    else:
                        losses += 1
                position = self._open(PositionSide.LONG, current)

            elif signal == SignalType.SELL and not self._is_side(position, PositionSide.SHORT):
                if position is not None:
                    pnl = (current.close - position.entry_price) * cfg.pnl_multiplier
                    trade = self._close(position, current, SignalType.SELL, pnl)
                    history.append(trade)
                    balance += pnl
                    if pnl > 0:
                        wins += 1
                    else:
                        losses += 1
                position = self._open(PositionSide.SHORT, current)

            if balance > peak_balance:
                peak_balance = balance
            drawdown = (peak_balance - balance) / peak_balance * 100
            if drawdown > max_drawdown:
                max_drawdown = drawdown

        total_trades = wins + losses
        result = BacktestResult(
            strategy=strategy,
            initial_balance=cfg.initial_balance,
            final_balance=balance,
            total_trades=total_trades,
            wins=wins,
            losses=losses,
            win_rate=(wins / total_trades) * 100 if total_trades > 0 else 0.0,
            profit=balance - cfg.initial_balance,
            max_drawdown=max_drawdown,
            history=history,
            open_position=position,
        )

        self.logger.info(
            LogMessages.BACKTEST_COMPLETED,
            strategy=strategy.value,
            profit=result.profit,
            trades=total_trades,
            open_position=position.side.value if position else None
        )

        return result

    def _strategy_signal(
        self,
        strategy: StrategyType,
        current: AnnotatedBar,
        prev: AnnotatedBar,
        position: Optional[OpenPosition]
    ) -> SignalType:
        cfg = self.config
        trend = Trend.BULLISH if current.ma50 > current.ma200 else Trend.BEARISH
        golden_cross = self._golden_cross(current, prev)
        death_cross = self._death_cross(current, prev)

        signal = SignalType.HOLD

        if strategy == StrategyType.MA_CROSSOVER:
            if golden_cross:
                signal = SignalType.BUY
            if death_cross:
                signal = SignalType.SELL

        elif strategy == StrategyType.RSI:
            if current.rsi < cfg.rsi_oversold:
                signal = SignalType.BUY
            if current.rsi > cfg.rsi_overbought:
                signal = SignalType.SELL

        elif strategy == StrategyType.COMBINED:
            if trend == Trend.BULLISH and current.rsi < cfg.rsi_oversold:
                signal = SignalType.BUY
            if trend == Trend.BEARISH and current.rsi > cfg.rsi_overbought:
                signal = SignalType.SELL

            if cfg.combined_cross_exit:
                if self._is_side(position, PositionSide.LONG) and death_cross:
                    signal = SignalType.SELL
                if self._is_side(position, PositionSide.SHORT) and golden_cross:
                    signal = SignalType.BUY

        return signal

    @staticmethod
    def _golden_cross(current: AnnotatedBar, prev: AnnotatedBar) -> bool:
        if prev.ma200 is None:
            return False
        return prev.ma50 < prev.ma200 and current.ma50 > current.ma200

    @staticmethod
    def _death_cross(current: AnnotatedBar, prev: AnnotatedBar) -> bool:
        if prev.ma200 is None:
            return False
        return prev.ma50 > prev.ma200 and current.ma50 < current.ma200

    @staticmethod
    def _is_side(position: Optional[OpenPosition], side: PositionSide) -> bool:
        return position is not None and position.side == side

    def _open(self, side: PositionSide, bar: AnnotatedBar) -> OpenPosition:
        self.logger.debug(
            LogMessages.POSITION_OPENED,
            side=side.value,
            entry=bar.close,
            time=bar.timestamp.isoformat()
        )
        return OpenPosition(side=side, entry_price=bar.close, entry_time=bar.timestamp)

    def _close(
        self,
        position: OpenPosition,
        bar: AnnotatedBar,
        direction: SignalType,
        pnl: float
    ) -> BacktestTrade:
        self.logger.debug(
            LogMessages.POSITION_CLOSED,
            side=position.side.value,
            entry=position.entry_price,
            exit=bar.close,
            pnl=pnl
        )
        return BacktestTrade(
            time=bar.timestamp,
            direction=direction,
            price=bar.close,
            profit=pnl,
            entry_price=position.entry_price,
        )


def run_strategy_backtest(
    bars: Sequence[AnnotatedBar],
    strategy: Union[StrategyType, str],
    config: Optional[BacktestConfig] = None,
    logger=None
) -> BacktestResult:
    """Convenience wrapper around BacktestEngine.run."""
    return BacktestEngine(config, logger).run(bars, strategy)


def compare_strategies(
    bars: Sequence[AnnotatedBar],
    config: Optional[BacktestConfig] = None,
    logger=None
) -> Dict[StrategyType, BacktestResult]:
    """Run every strategy over the same bars."""
    engine = BacktestEngine(config, logger)
    return {strategy: engine.run(bars, strategy) for strategy in StrategyType}


def print_results(result: BacktestResult, pair: str = "") -> None:
    """Print formatted backtest results"""
    print("\n" + "=" * 60)
    print(f"BACKTEST RESULTS - {result.strategy.value}{' - ' + pair if pair else ''}")
    print("=" * 60)

    print("\nPERFORMANCE SUMMARY")
    print(f"  Initial Balance:    ${result.initial_balance:,.2f}")
    print(f"  Final Balance:      ${result.final_balance:,.2f}")
    print(f"  Net Profit:         ${result.profit:,.2f}")

    print("\nTRADE STATISTICS")
    print(f"  Total Trades:       {result.total_trades}")
    print(f"  Winning Trades:     {result.wins} ({result.win_rate:.1f}%)")
    print(f"  Losing Trades:      {result.losses}")
    print(f"  Max Drawdown:       {result.max_drawdown:.2f}%")

    if result.open_position is not None:
        print(
            f"  Open Position:      {result.open_position.side.value} "
            f"@ {result.open_position.entry_price} (unrealized, excluded)"
        )

    if result.history:
        print("\nLAST TRADES")
        for trade in result.history[-5:]:
            print(
                f"  {trade.time.strftime('%Y-%m-%d %H:%M')}  {trade.direction.value:<4}  "
                f"{trade.price:<10}  ${trade.profit:,.2f}"
            )

    print("\n" + "=" * 60)
