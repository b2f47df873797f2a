"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseSettings):
    """Trading-bot backend connection settings."""

    model_config = SettingsConfigDict(env_prefix="BACKEND_")

    base_url: str = ""  # Explicit override; wins over host-based resolution
    local_url: str = "http://localhost:3011"
    deployed_url: str = "https://ethbnb-botapi.arrnaya.com"
    host: str = ""  # Hostname the dashboard is served under; empty = server-side
    request_timeout: float = 8.0  # seconds per GET


class SyncSettings(BaseSettings):
    """Data synchronization parameters."""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    interval: float = 10.0  # seconds between refresh cycles
    trades_window: int = 20  # most recent trades kept after each fetch
    default_timeframe: Literal["24h", "7d", "30d"] = "24h"


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True
    push_interval: int = 5  # seconds between WebSocket pushes


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    backend: BackendSettings = BackendSettings()
    sync: SyncSettings = SyncSettings()
    dashboard: DashboardSettings = DashboardSettings()
