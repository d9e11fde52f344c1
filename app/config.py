"""Configuration settings using Pydantic"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Supabase Configuration
    supabase_url: str = Field(..., alias="SUPABASE_URL")
    supabase_key: str = Field(..., alias="SUPABASE_KEY")

    # Supabase Auth issues the access tokens, we only verify them
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_audience: str = Field(default="authenticated", alias="JWT_AUDIENCE")

    # Weather
    # Without a key the current-conditions lookup serves mock data
    openweather_api_key: Optional[str] = Field(default=None, alias="OPENWEATHER_API_KEY")
    weather_timeout_seconds: float = Field(default=10.0, alias="WEATHER_TIMEOUT_SECONDS")
    weather_forecast_days: int = Field(default=16, alias="WEATHER_FORECAST_DAYS")  # Open-Meteo horizon
    weather_requests_per_minute: int = Field(default=30, alias="WEATHER_REQUESTS_PER_MINUTE")

    # Application Settings
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")

    # Itinerary limits
    max_trip_days: int = Field(default=30, alias="MAX_TRIP_DAYS")
    max_title_length: int = 200
    max_notes_length: int = 1000

    # Security Settings
    request_timeout_seconds: int = Field(default=30, alias="REQUEST_TIMEOUT_SECONDS")

    # CORS Settings
    allowed_origins: str = Field(
        default="http://localhost:5173",
        alias="ALLOWED_ORIGINS",
        description="Comma-separated list of allowed origins for CORS"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
