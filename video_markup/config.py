from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage
    db_path: str = "video_markup.db"
    audio_dir: str = "audio"
    max_audio_bytes: int = 25 * 1024 * 1024

    # Video metadata (YouTube oEmbed)
    oembed_endpoint: str = "https://www.youtube.com/oembed"
    oembed_timeout_seconds: float = 10.0

    # HTTP
    cors_origins: list[str] = ["*"]
    # Listing returns both tokens of every session; keep behind an operator boundary.
    enable_session_listing: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    model_config = {"env_file": ".env", "env_prefix": "MARKUP_", "extra": "ignore"}


settings = Settings()
