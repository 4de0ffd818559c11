from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # pydantic v2: ignore unknown env vars (e.g., ENV), load from .env
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    app_name: str = "mirrorshare"
    host: str = "0.0.0.0"
    port: int = 8570
    log_level: str = "info"
    # File logging options
    log_file_enabled: bool = False
    log_dir: str = "logs"
    log_file_name: str = "server.log"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5
    # Rotation policy: 'size' or 'time'
    log_rotation: str = "size"
    # If time-based rotation
    log_when: str = "midnight"  # 'S','M','H','D','midnight','W0'-'W6'
    log_interval: int = 1
    log_utc: bool = True

    # TLS; falls back to plain HTTP when the key/cert cannot be loaded
    https_enabled: bool = False
    https_key_path: str = ""
    https_cert_path: str = ""

    # Playback defaults pushed to the display client
    caption_enabled: bool = False
    caption_lang: str = "en"
    quality_target: str = "auto"
    quality_floor: str | None = None
    quality_ceiling: str | None = None
    quality_lock: bool = False

    # Metadata sources
    youtube_api_key: str | None = None  # env: YOUTUBE_API_KEY
    oembed_timeout_sec: float = 5.0
    data_api_timeout_sec: float = 8.0
    scrape_timeout_sec: float = 10.0
    scrape_max_bytes: int = 2 * 1024 * 1024

    # Admission control
    max_body_bytes: int = 1024 * 1024
    rate_limit_max: int = 100
    rate_limit_window_ms: int = 60_000
    rate_limit_sweep_sec: float = 30.0
    rate_limit_max_clients: int = 10_000

    metrics_enabled: bool = True
    # PWA static files, mounted at / when the directory exists
    public_dir: str = "public"

    @field_validator("port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return value

    @property
    def https_ready(self) -> bool:
        return bool(self.https_enabled and self.https_key_path and self.https_cert_path)


settings = Settings()
