"""Configuration management using Pydantic settings."""

from typing import List, Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class TrackerConfig(BaseSettings):
    """Configuration for the BTC address tracker."""

    # Ledger Explorer Settings
    ledger_base_url: str = Field(default="https://blockchain.info", description="Ledger explorer base URL")
    ledger_timeout: float = Field(default=10.0, description="Per-request timeout in seconds")
    ledger_user_agent: str = Field(default="BTC-Tracker/1.0", description="User-Agent sent upstream")

    # Database Settings
    database_url: str = Field(default="sqlite:///btc_tracker.db", description="Address store URL")

    # Server Settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001", "http://127.0.0.1:3000"],
        description="CORS allowed origins"
    )

    # Query Settings
    default_tx_limit: int = Field(default=50, description="Default transaction page size")

    # Logging Settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json|text)")
    log_file: Optional[str] = Field(default=None, description="Log file path")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "BTC_TRACKER_"

    @validator('ledger_timeout')
    def validate_timeout(cls, v):
        """Timeouts must be positive."""
        if v <= 0:
            raise ValueError("ledger_timeout must be positive")
        return v

    @validator('log_format')
    def validate_log_format(cls, v):
        """Only json and text renderers are supported."""
        if v.lower() not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v.lower()
