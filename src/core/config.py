from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Environment setting
    ENVIRONMENT: str = Field(
        "development",
        description="Environment: development, staging, production, testing",
    )

    # API settings
    PROJECT_NAME: str = Field("SurgiHistory Records API")
    API_PREFIX: str = Field("/api")
    DEBUG: bool = Field(False)
    ALLOWED_ORIGINS: str = Field("*")

    # Database settings
    DB_HOST: str = Field("localhost")
    DB_PORT: int = Field(5432)
    DB_USER: str = Field("postgres")
    DB_PASSWORD: str = Field("")
    DB_NAME: str = Field("surgihistory")
    DB_DRIVER: str = Field("postgresql+asyncpg")
    DB_POOL_SIZE: int = Field(20)
    DB_MAX_OVERFLOW: int = Field(10)

    SQLITE_MODE: bool = False

    # Jwt Security settings
    SECRET_KEY: str = Field("change-me-in-production")
    ALGORITHM: str = Field("HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24)

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = Field(True)
    LOGIN_RATE_LIMIT: str = Field("5/minute")

    # Uvicorn settings
    UVICORN_HOST: str = Field("0.0.0.0")
    UVICORN_PORT: int = Field(8000)
    WORKERS_COUNT: int = Field(1)
    RELOAD: bool = Field(True)

    # Upload storage
    UPLOAD_DIR: str = Field("uploads")
    UPLOAD_URL_PATH: str = Field("/uploads")
    MAX_UPLOAD_SIZE_MB: int = Field(50)

    # WhatsApp Business (Meta Graph API); all optional
    WHATSAPP_ACCESS_TOKEN: Optional[str] = Field(None)
    WHATSAPP_PHONE_NUMBER_ID: Optional[str] = Field(None)
    WHATSAPP_API_VERSION: str = Field("v18.0")
    WHATSAPP_API_BASE_URL: str = Field("https://graph.facebook.com")
    WHATSAPP_WEBHOOK_VERIFY_TOKEN: str = Field("surgihistory_whatsapp_webhook")
    WHATSAPP_DEFAULT_COUNTRY_CODE: str = Field("92")
    WHATSAPP_TIMEOUT_SECONDS: float = Field(15.0)

    # Private notes: "cohort_shared" or "single_owner"
    PRIVATE_NOTE_SCOPE: str = Field("cohort_shared")

    # Audit log retention
    AUDIT_LOG_MIN_RETENTION_DAYS: int = Field(30)
    AUDIT_LOG_DEFAULT_RETENTION_DAYS: int = Field(90)

    @property
    def POSTGRESQL_DATABASE_URL(self) -> str:
        return (
            f"{self.DB_DRIVER}://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def SQLITE_DATABASE_URL(self) -> str:
        return f"sqlite+aiosqlite:///{self.DB_NAME}.db"

    @property
    def DATABASE_URL(self) -> str:
        return (
            self.SQLITE_DATABASE_URL
            if self.SQLITE_MODE
            else self.POSTGRESQL_DATABASE_URL
        )

    @property
    def MAX_UPLOAD_SIZE_BYTES(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @field_validator("ALLOWED_ORIGINS")
    def validate_origins(cls, v: str) -> List[str]:
        return v.split(",") if v else []

    @field_validator("PRIVATE_NOTE_SCOPE")
    def validate_private_note_scope(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("cohort_shared", "single_owner"):
            raise ValueError(
                "PRIVATE_NOTE_SCOPE must be 'cohort_shared' or 'single_owner'"
            )
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
