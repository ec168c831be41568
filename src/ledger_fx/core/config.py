from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"

    database_url: str = "sqlite:///./ledger.db"
    redis_url: str = "redis://localhost:6379/0"

    fx_source_url: str = "https://www.x-rates.com/table/"
    fx_http_timeout_seconds: float = 10.0
    fx_user_agent: str = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
    fx_batch_delay_seconds: float = 0.5

    fx_default_currencies: list[str] = ["CAD", "USD", "EUR", "GBP"]
    # Ordered; the first intermediate that bridges both legs wins.
    fx_triangulation_currencies: list[str] = ["USD", "EUR", "CAD", "GBP"]
    fx_triangulate_via_store: bool = False
    fx_display_default_rate: float = 1.0


settings = Settings()
