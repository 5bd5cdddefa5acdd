"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./calendar_copilot.db"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Agent loop
    MAX_TOOL_ITERATIONS: int = 5

    # Free/busy defaults
    MAX_FREE_SLOTS: int = 30
    WORK_START_HOUR: int = 9
    WORK_END_HOUR: int = 18
    DEFAULT_TIMEZONE: str = "UTC"
    DEFAULT_SLOT_MINUTES: int = 30

    # Travel collaborators
    AMADEUS_API_KEY: str = ""
    AMADEUS_API_SECRET: str = ""
    AMADEUS_BASE_URL: str = "https://test.api.amadeus.com"
    OPEN_METEO_GEOCODING_URL: str = "https://geocoding-api.open-meteo.com/v1/search"
    OPEN_METEO_FORECAST_URL: str = "https://api.open-meteo.com/v1/forecast"
    HTTP_TIMEOUT_SECONDS: float = 15.0

    class Config:
        env_file = ".env"


settings = Settings()
