from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "device-management-api"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8081"

    DATABASE_URL: str
    DB_STATEMENT_TIMEOUT_SECONDS: int = 30

    DEFAULT_PAGE_LIMIT: int = 10
    CSV_IMPORT_BATCH_SIZE: int = 100
    MAX_MODEL_IMAGE_KB: int = 150
    DISPLAY_TIMEZONE: str = "UTC"

    S3_ENDPOINT: str = ""
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_REGION: str = "us-east-1"
    S3_USE_SSL: bool = False
    FIRMWARE_BUCKET: str = "firmware"
    TRASH_BUCKET: str = "trash"
    FIRMWARE_URL_TTL_SECONDS: int = 7 * 24 * 3600

    # Compose/infra vars that may exist in shared .env
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "devices"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
