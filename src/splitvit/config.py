"""Configuration management for SplitVit."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Hosted backend (Supabase project)
    supabase_url: str
    supabase_anon_key: str

    # Base of the read-only share link; the token is appended as a fragment
    share_base_url: str = "http://localhost:5173/"

    # Display settings
    currency_symbol: str = "₹"

    # Local session cache
    database_path: Path = Path.home() / ".splitvit" / "splitvit.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Make sure you have created a .env file "
            f"with SUPABASE_URL and SUPABASE_ANON_KEY. See .env.example for reference.\n"
            f"Error: {e}"
        ) from e
