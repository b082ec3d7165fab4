import json
import logging

import pandas as pd
import pytest
import structlog

from fxsignal.backtesting import run_backtest
from fxsignal.core.config import Settings
from fxsignal.core.exceptions import InvalidSettingsError, UnknownStrategyError
from fxsignal.data.market_data import bars_to_dataframe, generate_market_data
from fxsignal.strategies.indicators import annotate_bars
from fxsignal.strategies.models import SignalType


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def run_json(capsys, *args):
    assert run_backtest.main(["--json", *args]) == 0
    return json.loads(capsys.readouterr().out)


def test_json_report_covers_every_strategy(capsys):
    report = run_json(capsys, "--all", "--seed", "3", "--bars", "120")

    assert report["pair"] == "EUR/USD"
    assert report["bars"] == 320
    assert set(report["backtests"]) == {"MA_CROSSOVER", "RSI", "COMBINED"}
    assert report["analysis"]["signal"] in {s.value for s in SignalType}
    for result in report["backtests"].values():
        assert result["wins"] + result["losses"] == result["total_trades"]


def test_seeded_runs_are_reproducible(capsys):
    first = run_json(capsys, "--strategy", "rsi", "--seed", "5")
    second = run_json(capsys, "--strategy", "rsi", "--seed", "5")

    # timestamps are anchored to the current time, prices are not
    assert first["analysis"] == second["analysis"]
    assert list(first["backtests"]) == ["RSI"]
    for key in ("final_balance", "total_trades", "wins", "max_drawdown"):
        assert first["backtests"]["RSI"][key] == second["backtests"]["RSI"][key]


def test_text_report(capsys):
    assert run_backtest.main(["--pair", "usd/jpy", "--strategy", "MA_CROSSOVER", "--seed", "1"]) == 0
    out = capsys.readouterr().out

    assert "MARKET ANALYSIS - USD/JPY" in out
    assert "BACKTEST RESULTS - MA_CROSSOVER - USD/JPY" in out


def test_trades_are_written_to_csv(tmp_path, capsys):
    out_path = tmp_path / "trades.csv"
    report = run_json(capsys, "--all", "--seed", "8", "--trades-out", str(out_path))

    trades = pd.read_csv(out_path)
    assert list(trades.columns) == ["strategy", "time", "direction", "price", "profit", "entry_price"]
    assert len(trades) == sum(r["total_trades"] for r in report["backtests"].values())


def test_bars_can_be_loaded_from_csv(tmp_path, capsys):
    bars = generate_market_data(count=60, warmup=200, seed=4)
    csv_path = tmp_path / "bars.csv"
    bars_to_dataframe(bars).to_csv(csv_path)

    report = run_json(capsys, "--csv", str(csv_path), "--strategy", "COMBINED")

    assert report["bars"] == 260
    assert report["analysis"]["current_price"] == pytest.approx(bars[-1].close)


def test_unknown_strategy_is_rejected():
    with pytest.raises(UnknownStrategyError):
        run_backtest.main(["--strategy", "MOMENTUM", "--seed", "1"])


def test_strict_mode_rejects_warnings(monkeypatch):
    monkeypatch.setattr(
        run_backtest, "get_settings",
        lambda: Settings(_env_file=None, ma_fast_period=300)
    )
    with pytest.raises(InvalidSettingsError):
        run_backtest.main(["--strict"])


def test_latest_analysis_needs_two_bars():
    bars = annotate_bars(generate_market_data(count=1, warmup=0, seed=1))
    assert run_backtest.latest_analysis(bars, "EUR/USD") is None


def test_cross_exit_flag_runs_combined(capsys):
    report = run_json(capsys, "--strategy", "COMBINED", "--cross-exit", "--seed", "2")
    assert list(report["backtests"]) == ["COMBINED"]
