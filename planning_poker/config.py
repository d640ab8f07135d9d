"""Server configuration."""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="PLANNING_POKER_")

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    static_dir: Optional[str] = None

    # Round timer
    default_timer_duration: int = 60
    max_timer_duration: int = 3600
    auto_reveal_on_expiry: bool = True

    # Idle game eviction (0 disables)
    game_idle_ttl_seconds: int = 86400
    reaper_interval_seconds: int = 60

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"


settings = Settings()
