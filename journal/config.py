"""Application configuration via environment variables."""

from pathlib import Path
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    database_url: str = f"sqlite:///{PROJECT_ROOT / 'data' / 'journal.db'}"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173"]  # Vite dev server
    timezone: str = "UTC"  # calendar days for the streak are counted in this zone

    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440  # 24 hours

    # Live prices (Hyperliquid)
    price_retry_attempts: int = 3
    price_retry_base_delay: float = 0.5  # seconds, doubled per attempt
    price_retry_max_delay: float = 8.0
    price_stream_timeout: float = 5.0
    price_poll_seconds: int = 10

    # Screenshot uploads (Cloudinary unsigned preset)
    cloudinary_cloud_name: str = ""
    cloudinary_upload_preset: str = "trading_screenshots"
    max_screenshot_bytes: int = 5 * 1024 * 1024

    # Telegram
    telegram_bot_token: str = ""
    telegram_chat_ids: list[int] = []

    model_config = {"env_prefix": "JOURNAL_", "env_file": ".env"}


settings = Settings()
