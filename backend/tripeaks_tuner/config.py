"""Application configuration settings."""
import os
import json
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List

from .models.level import BoardGeometry


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "TriPeaks Deck Tuner"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS settings - as comma-separated string or JSON array
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Engine defaults (coordinates are in level JSON layout units)
    overlap_threshold: float = 150.0
    row_tolerance: float = 30.0
    turn_cap: int = 1000
    max_workers: int = 4
    default_seed: Optional[int] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_cors_origins(self) -> List[str]:
        """Parse CORS origins from string (comma-separated or JSON)."""
        if not self.cors_origins:
            return ["http://localhost:5173"]

        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
        except json.JSONDecodeError:
            pass

        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def geometry(self) -> BoardGeometry:
        return BoardGeometry(
            overlap_threshold=self.overlap_threshold,
            row_tolerance=self.row_tolerance,
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings instance (re-read on every call when DEBUG=true)."""
    global _settings
    if _settings is None or os.getenv("DEBUG", "false").lower() == "true":
        _settings = Settings()
    return _settings
