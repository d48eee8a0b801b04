from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    WEBHOOK_URL: str = ""
    USER_AGENT: str = "Cloudflare-Email-Worker/1.0"
    REQUEST_TIMEOUT_SEC: Optional[float] = 10.0

    QUEUE_NAME: str = "global-email-queue"
    FLUSH_THRESHOLD: int = 50
    MAX_BATCH_SIZE: int = 100
    MAX_RETRIES: int = 3
    BASE_DELAY_MS: float = 1000.0
    FLUSH_INTERVAL_SEC: Optional[float] = None
    SHUTDOWN_TIMEOUT_SEC: Optional[float] = 30.0

    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8082

    @property
    def webhook_url(self) -> str:
        return self.WEBHOOK_URL

    class Config:
        env_file = ".env"
        env_prefix = "MAIL_QUEUE_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
