from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    recommendations_path: Path = Path("data/trades.json")
    store_backend: Literal["sqlite", "json"] = "sqlite"
    db_path: Path = Path("data/trade_journal.sqlite3")
    user_trades_path: Path = Path("data/userTrades.json")
    client_dir: Path = Path("client")

    timezone: str = "America/New_York"

    live_prices_enabled: bool = True
    quote_timeout_seconds: float = Field(default=8.0, ge=1, le=60)

    # Close-time strictness
    validate_outcomes: bool = True
    reject_reclose: bool = False

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = "INFO"
    log_file: Path | None = None

    @model_validator(mode="after")
    def validate_timezone(self) -> "Settings":
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown TIMEZONE '{self.timezone}'") from exc
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


settings = Settings()
