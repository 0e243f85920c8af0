from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    APP_NAME: str = "Nefes Depo Backend"
    APP_VERSION: str = "1.0.0"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # MongoDB; the in-memory store is used when no URI is set
    MONGODB_URI: Optional[str] = None
    MONGODB_DATABASE: str = "nefes_depo"
    MONGODB_COLLECTION: str = "quotes"

    # Mail API (Mailgun-compatible); notifications are skipped when unset
    MAIL_API_URL: Optional[str] = None
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None
    MAIL_TIMEOUT_SECONDS: float = 10.0

    COMPANY_NAME: str = "Nefes Depo Nakliyat"
    ESTIMATED_RESPONSE: str = "within 24 hours"

    # No fallback secret: admin endpoints reject everything when unset
    ADMIN_PASSWORD: Optional[str] = None

    CORS_ORIGINS: List[str] = ["*"]

    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    @property
    def mail_enabled(self) -> bool:
        return bool(self.MAIL_API_URL and self.EMAIL_USER and self.EMAIL_PASS)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
