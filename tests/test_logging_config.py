import threading

import pytest
from structlog.contextvars import clear_contextvars, get_contextvars

from fxsignal.core.config import get_settings
from fxsignal.core.logging_config import AnalysisContextLogger, add_app_context


@pytest.fixture(autouse=True)
def clean_context():
    clear_contextvars()
    yield
    clear_contextvars()


def test_context_is_bound_and_restored_when_nested():
    with AnalysisContextLogger(pair="EUR/USD"):
        assert get_contextvars() == {"pair": "EUR/USD"}

        with AnalysisContextLogger(pair="GBP/USD", strategy="RSI", run=2):
            assert get_contextvars() == {"pair": "GBP/USD", "strategy": "RSI", "run": 2}

        assert get_contextvars() == {"pair": "EUR/USD"}

    assert get_contextvars() == {}


def test_context_is_restored_after_an_exception():
    with pytest.raises(RuntimeError):
        with AnalysisContextLogger(strategy="COMBINED"):
            raise RuntimeError("boom")

    assert get_contextvars() == {}


def test_context_does_not_leak_into_other_threads():
    seen = {}

    def worker():
        with AnalysisContextLogger(pair="USD/JPY"):
            seen["worker"] = get_contextvars()

    with AnalysisContextLogger(pair="EUR/USD"):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()
        assert get_contextvars() == {"pair": "EUR/USD"}

    assert seen["worker"] == {"pair": "USD/JPY"}


def test_app_context_comes_from_settings():
    event = add_app_context(None, "info", {"event": "hello"})

    assert event["app"] == get_settings().app_name
    assert event["env"] == get_settings().app_env.value
