"""Configuration management for SplitLedger."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .credentials import DEFAULT_ITERATIONS
from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Record storage
    ledger_data_dir: Path = Path.home() / ".split_ledger"
    users_filename: str = "users.txt"
    expenses_filename: str = "expenses.txt"

    # Credential hashing
    credential_iterations: int = Field(default=DEFAULT_ITERATIONS, gt=0)

    # Export settings
    export_filename: str = "balance.csv"  # Default CSV file for `export`

    def __init__(self, **kwargs):
        """Initialize settings and create the data directory if needed."""
        super().__init__(**kwargs)
        self.ledger_data_dir.mkdir(parents=True, exist_ok=True)


def load_settings(**overrides) -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings(**overrides)
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your environment variables "
            f"and .env file.\n"
            f"Error: {e}"
        ) from e
