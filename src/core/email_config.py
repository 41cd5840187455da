# src/core/email_config.py
from pydantic_settings import BaseSettings
from pydantic import EmailStr
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class EmailSettings(BaseSettings):
    """Email configuration settings. Every credential is optional."""

    RESEND_API_KEY: Optional[str] = None
    FROM_EMAIL: EmailStr = "no-reply@surgihistory.app"
    FROM_NAME: str = "SurgiHistory"
    SUPPORT_EMAIL: EmailStr = "support@surgihistory.app"
    APP_NAME: str = "SurgiHistory"
    LOGIN_URL: str = "https://app.surgihistory.app/login"

    # Template settings; empty means the packaged templates/email directory
    TEMPLATE_DIR: str = ""

    # Feature flags
    SEND_EMAILS: bool = True
    LOG_EMAILS: bool = True

    class Config:
        env_file_encoding = "utf-8"
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"


email_settings = EmailSettings()
