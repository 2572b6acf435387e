"""
QuantDesk configuration - loaded from environment (QUANTDESK_*).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="QUANTDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Capital / sizing
    initial_capital: float = 100_000.0
    risk_per_trade_pct: float = 2.0  # % of equity risked per simulated trade
    max_position_pct: float = 25.0  # Single position cap, % of equity
    suggested_risk_capital: float = 2_000.0  # 2% of a 100k book, for snapshot sizing

    # Live scan
    signal_lookback_bars: int = 5
    min_price: float = 35.0
    min_history_bars: int = 252

    # Backtest
    backtest_min_history: int = 201
    backtest_warmup_bars: int = 200
    backtest_workers: int = 1

    # Logging (CLI)
    log_level: str = "INFO"


settings = Settings()


def get_settings() -> Settings:
    """Return engine settings (for dependency injection)."""
    return settings
