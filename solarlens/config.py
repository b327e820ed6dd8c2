"""
Application configuration using pydantic-settings.

Loads configuration from environment variables with sensible defaults.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Values shipped in example .env files; treated the same as an empty key.
PLACEHOLDER_KEYS = {
    "",
    "your_openai_api_key",
    "your_google_solar_api_key",
    "your_pvwatts_api_key",
    "your_srec_trade_api_key",
}


def is_configured(api_key: Optional[str]) -> bool:
    """Return True when an API key is set to something other than a placeholder."""
    return api_key is not None and api_key.strip() not in PLACEHOLDER_KEYS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./solarlens.db"

    # JWT
    jwt_secret_key: str = "solarlens-dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 30

    # File Storage
    upload_dir: Path = Path("./uploads")
    max_upload_size_mb: int = 10

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # Text extraction
    tesseract_cmd: Optional[str] = None
    pdf_max_pages: int = 3
    ocr_binarize_threshold: int = 128

    # OpenAI structured extraction
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    openai_timeout_seconds: float = 30.0
    ai_max_input_chars: int = 12000
    ai_extraction_log_dir: Path = Path("./logs/ai-extractions")

    # External estimation services
    google_solar_api_url: str = "https://solar.googleapis.com/v1"
    google_solar_api_key: Optional[str] = None
    pvwatts_api_url: str = "https://developer.nrel.gov/api/pvwatts/v6"
    pvwatts_api_key: Optional[str] = None
    srec_api_url: str = "https://api.srectrade.com/v1"
    srec_api_key: Optional[str] = None
    estimation_timeout_seconds: float = 15.0

    # Location used when neither the request nor the user profile has one
    fallback_latitude: float = 40.7128
    fallback_longitude: float = -74.0060
    fallback_state: str = "NY"

    @property
    def max_upload_size_bytes(self) -> int:
        """Get maximum upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
