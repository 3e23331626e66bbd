"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Feature source (OpenStreetMap Overpass)
    overpass_url: str = Field(
        default="https://overpass-api.de/api/interpreter",
        description="Overpass API interpreter endpoint"
    )
    overpass_query_timeout: int = Field(
        default=30,
        description="Server-side timeout in seconds embedded in Overpass queries"
    )

    # Soil and weather services
    soilgrids_base_url: str = Field(
        default="https://rest.isric.org",
        description="Base URL for the ISRIC SoilGrids REST API"
    )
    power_base_url: str = Field(
        default="https://power.larc.nasa.gov",
        description="Base URL for the NASA POWER API"
    )
    http_timeout: float = Field(
        default=30.0,
        description="Transport timeout in seconds for outbound HTTP calls"
    )

    # Environmental sampling
    grid_size: int = Field(
        default=3,
        description="Default number of sample points per bounding-box side"
    )
    max_grid_size: int = Field(
        default=10,
        description="Largest accepted grid size; each point costs two outbound requests"
    )
    climate_window_days: int = Field(
        default=30,
        description="Length of the trailing weather window in days"
    )

    # Analysis requester (Gemini)
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Base URL for the Gemini API"
    )
    gemini_api_key: str = Field(
        default="",
        description="API key for the Gemini API"
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash-preview-05-20",
        description="Gemini model used for summaries and chat"
    )

    # Retry Configuration (analysis requester only)
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for analysis calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum analyze requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="LandLens",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


# Global settings instance
settings = Settings()
