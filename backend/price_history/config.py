# backend/price_history/config.py
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- STORAGE_ROOT: Directory holding prices, splits, dividends, logs, reports
- CHART_API_URL / REQUEST_TIMEOUT: Upstream chart API settings
- LOOKBACK_YEARS: Coverage analysis window

Environment-specific behavior:
- test: STORAGE_ROOT may be omitted (tests inject a temporary directory)
- development / production: STORAGE_ROOT is required

The storage root is resolved exactly once, when the file storage is built
(see price_history.dependencies.get_file_storage). Components receive it at
construction and never look it up on their own.

Usage:
    from price_history.config import settings

    storage = FileStorage(settings.storage_root)
"""
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Find the .env file in project root (parent of backend/)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _BACKEND_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - STORAGE_ROOT: Writable data directory (required except in test)
        - APP_NAME: Application name (default: "Portfolio Price History")
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")

    Market data settings (optional, with sensible defaults):
        - CHART_API_URL: Base URL of the chart API
        - REQUEST_TIMEOUT: Per-request timeout in seconds (default: 10)
        - USER_AGENT: User-Agent header sent with chart requests
        - UNSUPPORTED_EXCHANGES: Exchange codes the provider does not cover
        - LOOKBACK_YEARS: Coverage window in years (default: 15)
        - WORKER_LOG_NAME: Background worker log file name
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    app_name: str = "Portfolio Price History"
    debug: bool = False

    # =========================================================================
    # STORAGE
    # =========================================================================
    storage_root: Path | None = Field(
        default=None,
        description="Directory holding all persisted files (required outside test)"
    )
    transactions_file: str = Field(
        default="transactions.json",
        description="Logical name of the parsed transaction list inside the storage root"
    )
    worker_log_name: str = Field(
        default="logs/sync_worker.log",
        description="Logical name of the append-only background worker log"
    )

    # =========================================================================
    # MARKET DATA
    # =========================================================================
    chart_api_url: str = Field(
        default="https://query1.finance.yahoo.com",
        description="Base URL of the chart API"
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout in seconds for a single chart request"
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; portfolio-price-history)",
        description="User-Agent header sent with chart requests"
    )
    unsupported_exchanges: list[str] = Field(
        default_factory=list,
        description="Exchange codes the provider does not cover; such symbols are skipped"
    )

    # =========================================================================
    # ANALYTICS
    # =========================================================================
    lookback_years: int = Field(
        default=15,
        ge=1,
        le=100,
        description="Coverage analysis window in years"
    )

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("unsupported_exchanges")
    @classmethod
    def normalize_exchanges(cls, value: list[str]) -> list[str]:
        """Upper-case and strip exchange codes."""
        return [code.strip().upper() for code in value if code and code.strip()]

    @model_validator(mode="after")
    def validate_storage_config(self) -> "Settings":
        """
        Validate storage configuration based on environment.

        Rules:
        - test: STORAGE_ROOT optional (fixtures provide a temporary directory)
        - development / production: STORAGE_ROOT required
        """
        if self.environment == "test":
            return self

        if self.storage_root is None:
            raise ValueError(
                f"STORAGE_ROOT is required in {self.environment} environment. "
                "Set the STORAGE_ROOT environment variable to a writable directory. "
                "Example: STORAGE_ROOT=/var/lib/portfolio/data"
            )

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"


settings = Settings()
