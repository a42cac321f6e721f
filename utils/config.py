"""
Configuration management.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    allowed_origins: list[str] = field(
        default_factory=lambda: _env_list("ALLOWED_ORIGINS", "http://localhost:8000")
    )

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    store_path: Optional[str] = field(default_factory=lambda: os.getenv("STORE_PATH") or None)

    # Places index
    google_places_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("GOOGLE_PLACES_API_KEY") or None
    )
    places_timeout: int = field(default_factory=lambda: int(os.getenv("PLACES_TIMEOUT", "10")))
    places_bias_radius_m: int = field(
        default_factory=lambda: int(os.getenv("PLACES_BIAS_RADIUS_M", "5000"))
    )

    # Notifications
    push_notifications: bool = field(default_factory=lambda: _env_bool("PUSH_NOTIFICATIONS"))

    # Access passes
    access_pass_secret: str = field(
        default_factory=lambda: os.getenv("ACCESS_PASS_SECRET", "dev-access-pass-secret")
    )
    access_pass_ttl_minutes: int = field(
        default_factory=lambda: int(os.getenv("ACCESS_PASS_TTL_MINUTES", "30"))
    )

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def configure_logging(self) -> None:
        """Install a root handler at ``log_level``."""
        level = logging.DEBUG if self.debug else getattr(logging, self.log_level, logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    def to_dict(self) -> dict:
        """Convert config to dictionary. Secrets are redacted."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "allowed_origins": self.allowed_origins,
            "data_dir": self.data_dir,
            "store_path": self.store_path,
            "google_places_api_key": "***" if self.google_places_api_key else None,
            "places_timeout": self.places_timeout,
            "places_bias_radius_m": self.places_bias_radius_m,
            "push_notifications": self.push_notifications,
            "access_pass_secret": "***",
            "access_pass_ttl_minutes": self.access_pass_ttl_minutes,
        }
