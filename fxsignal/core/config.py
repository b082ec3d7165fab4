"""
Configuration Management
========================
Centralized settings management using Pydantic Settings.
All configuration is loaded from environment variables with validation.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from enum import Enum

from fxsignal.strategies.models import StrategyType


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The engine itself never reads these; they are turned into
    IndicatorConfig / BacktestConfig by the runner.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_name: str = "FxSignal"
    app_env: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    # -------------------------------------------------------------------------
    # Analysis / Backtest Defaults
    # -------------------------------------------------------------------------
    default_pair: str = "EUR/USD"
    default_strategy: StrategyType = StrategyType.COMBINED
    initial_balance: float = Field(
        default=10000.0,
        gt=0,
        description="Starting balance for every backtest run"
    )
    pnl_multiplier: float = Field(
        default=10000.0,
        gt=0,
        description="Currency units per unit of price movement"
    )

    # Indicator periods
    ma_fast_period: int = Field(default=50, ge=1)
    ma_slow_period: int = Field(default=200, ge=1)
    rsi_period: int = Field(default=14, ge=1)
    atr_period: int = Field(default=14, ge=1)
    macd_fast: int = Field(default=12, ge=1)
    macd_slow: int = Field(default=26, ge=1)
    macd_signal: int = Field(default=9, ge=1)

    # -------------------------------------------------------------------------
    # Synthetic Data
    # -------------------------------------------------------------------------
    synthetic_bar_count: int = Field(default=300, ge=1)
    synthetic_warmup: int = Field(default=200, ge=0)
    synthetic_seed: Optional[int] = None

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == Environment.PRODUCTION

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v

    @field_validator("default_pair")
    @classmethod
    def normalize_pair(cls, v: str) -> str:
        return v.strip().upper()

    def validate_engine_config(self) -> List[str]:
        """
        Validate indicator configuration and return list of warnings.
        Call this after loading settings to check for potential issues.
        """
        warnings = []

        if self.ma_fast_period >= self.ma_slow_period:
            warnings.append(
                f"ma_fast_period ({self.ma_fast_period}) >= ma_slow_period ({self.ma_slow_period})"
            )

        if self.macd_fast >= self.macd_slow:
            warnings.append(
                f"macd_fast ({self.macd_fast}) >= macd_slow ({self.macd_slow})"
            )

        if self.synthetic_warmup < self.ma_slow_period:
            warnings.append(
                f"synthetic_warmup ({self.synthetic_warmup}) < ma_slow_period "
                f"({self.ma_slow_period}): early synthetic bars will be degenerate"
            )

        if self.is_production and self.debug:
            warnings.append("Debug mode is enabled in production")

        return warnings


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are only loaded once.
    """
    return Settings()

