"""
Logging Configuration
=====================
Structured logging setup using structlog for consistent, parseable logs.

Nothing here runs at import time. Entry points call setup_logging();
engine components receive a logger (or fall back to get_logger) so that
no module owns a process-wide sink.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog
from structlog.types import EventDict, Processor

from fxsignal.core.config import get_settings


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO timestamp to every log entry."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to every log entry."""
    settings = get_settings()
    event_dict["app"] = settings.app_name
    event_dict["env"] = settings.app_env.value
    return event_dict


class AnalysisContextLogger:
    """
    Context manager for adding analysis context to logs.

    The values are bound with structlog's contextvars, so each thread or
    task sees only its own context and nesting restores the outer values.

    Usage:
        with AnalysisContextLogger(pair="EUR/USD", strategy="RSI"):
            logger.info("Backtest started", bars=500)
    """

    def __init__(
        self,
        pair: Optional[str] = None,
        strategy: Optional[str] = None,
        **kwargs: Any
    ):
        self.new_context: Dict[str, Any] = {}
        if pair:
            self.new_context["pair"] = pair
        if strategy:
            self.new_context["strategy"] = strategy
        self.new_context.update(kwargs)
        self._tokens: Mapping[str, Any] = {}

    def __enter__(self) -> "AnalysisContextLogger":
        self._tokens = structlog.contextvars.bind_contextvars(**self.new_context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    json_format: Optional[bool] = None
) -> structlog.stdlib.BoundLogger:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level from settings
        log_file: Optional file path for logging
        json_format: Use JSON formatting (defaults to settings.log_json)

    Returns:
        Configured structlog logger
    """
    settings = get_settings()
    level = log_level or settings.log_level
    if json_format is None:
        json_format = settings.log_json

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_app_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format or settings.is_production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    # stderr keeps the CLI's report on stdout clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    handlers: list[logging.Handler] = [console_handler]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(getattr(logging, level.upper()))

    return structlog.get_logger()


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance with optional name binding.

    Args:
        name: Optional module/component name to bind to logger

    Returns:
        Bound structlog logger
    """
    # initial values keep the proxy lazy, so module-level loggers still
    # pick up the configuration made later by setup_logging()
    if name:
        return structlog.get_logger(component=name)
    return structlog.get_logger()


class LogMessages:
    """
    Standard log message templates for consistency.
    """

    # Indicator events
    INDICATORS_CALCULATED = "Indicators calculated"

    # Analysis events
    ANALYSIS_DEGENERATE = "Insufficient history for analysis"
    ANALYSIS_COMPLETED = "Market analysis completed"

    # Backtest events
    BACKTEST_STARTED = "Starting backtest"
    BACKTEST_COMPLETED = "Backtest completed"
    POSITION_OPENED = "Position opened"
    POSITION_CLOSED = "Position closed"

    # Data events
    DATA_GENERATED = "Synthetic data generated"
    DATA_LOADED = "Market data loaded"
