"""
Application Configuration

This module provides centralized configuration management using Pydantic Settings.
Configuration can be loaded from environment variables or .env files.
"""

from typing import Optional, List
from pathlib import Path
from functools import lru_cache
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Get project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent


class StorageSettings(BaseSettings):
    """Location history storage configuration"""
    data_dir: str = Field(
        default=str(PROJECT_ROOT / "data"),
        description="Directory holding the location history log"
    )
    history_file: str = Field(
        default="location_history.txt",
        description="File name of the append-only history log"
    )
    export_dir: str = Field(
        default=str(PROJECT_ROOT / "data" / "exports"),
        description="Directory where CSV exports are written"
    )

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    @property
    def history_path(self) -> Path:
        return Path(self.data_dir) / self.history_file


class LocationSettings(BaseSettings):
    """Location provider configuration"""
    provider: str = Field(default="mock", description="Location provider: mock, gpsd")
    update_interval_ms: int = Field(default=5000, gt=0, description="Desired update interval (ms)")
    gpsd_host: str = Field(default="localhost", description="GPSD host")
    gpsd_port: int = Field(default=2947, description="GPSD port")
    mock_default_lat: float = Field(default=19.4326, description="Mock default latitude")
    mock_default_lon: float = Field(default=-99.1332, description="Mock default longitude")
    simulate: bool = Field(default=True, description="Run the mock random walk while the API is up")
    grant_fine: bool = Field(default=True, description="Fine location capability granted")
    grant_coarse: bool = Field(default=True, description="Coarse location capability granted")

    model_config = SettingsConfigDict(env_prefix="LOCATION_")


class APISettings(BaseSettings):
    """API server configuration"""
    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=8000, description="API port")
    reload: bool = Field(default=False, description="Auto-reload on changes")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(env_prefix="API_")

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration"""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        description="Log format"
    )
    file: Optional[str] = Field(
        default=str(PROJECT_ROOT / "logs" / "fixtrack.log"),
        description="Log file path"
    )

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main application settings"""

    # Application info
    app_name: str = Field(default="Fix Tracker", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings instance (cached)
    """
    return Settings()


# Convenience access to settings
settings = get_settings()
