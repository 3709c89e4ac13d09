"""Configuration: TOML profiles and structlog setup."""

from bbforecast.config.settings import Settings, configure_logging, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
