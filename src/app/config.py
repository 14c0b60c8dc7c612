"""Configuration management using Pydantic settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "NOVA-DEFENSE"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Frame loop
    frame_rate: float = 60.0        # Hz
    max_frame_dt: float = 100.0     # ms, longer frames are clamped
    autostart_loop: bool = True     # start the frame loop with the app

    # Session
    wave_advance_delay: float = 3000.0  # ms spent in wave_complete
    rng_seed: Optional[int] = None      # fixed seed for reproducible sessions

    # WebSocket frame stream
    ws_frame_rate: float = 30.0     # Hz, frames pushed to clients


settings = Settings()
