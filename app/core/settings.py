from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class Env(str, Enum):
    DEV = "dev"
    HML = "hml"
    PROD = "prod"


class Settings(BaseSettings):
    APP_ENV: Env = Env.DEV
    DEBUG: bool = False

    DATABASE_URL: str = "sqlite:///./counselling.db"

    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"

    ALLOWED_HOSTS: str = "localhost,127.0.0.1"

    # SMTP; with MAIL_ENABLED=false messages are only logged
    MAIL_ENABLED: bool = False
    MAIL_HOST: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_TLS: bool = True
    MAIL_USER: str = ""
    MAIL_PASS: str = ""
    MAIL_FROM: str = "counselling@elshaddai.com"
    MAIL_FROM_NAME: str = "El-Shaddai Revival Centre"

    # Microsoft Graph (online meetings). Empty values -> placeholder links
    AZURE_CLIENT_ID: str = ""
    AZURE_CLIENT_SECRET: str = ""
    AZURE_TENANT_ID: str = ""
    AZURE_USER_ID: str = ""
    MEETING_PLACEHOLDER_BASE_URL: str = "https://teams.microsoft.com/l/meetup-join"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Counselling rules
    COUNSELLING_TZ: str = "Africa/Accra"
    COUNSELLING_SLOT_MINUTES: int = 30
    COUNSELLING_HORIZON_DAYS: int = 14
    COUNSELLING_CENTRE_NAME: str = "El-Shaddai Revival Centre"
    COUNSELLING_CENTRE_ADDRESS: str = "Nabewam, Ghana"
    COUNSELLING_CONTACT_EMAIL: str = "counselling@elshaddai.com"
    COUNSELLING_CONTACT_PHONE: str = "+233 50 123 4567"
    NOTIFICATION_RETRY_GRACE_MINUTES: int = 10
    NOTIFICATION_MAX_ATTEMPTS: int = 5

    # Wizard (client side)
    COUNSELLING_API_BASE_URL: str = "http://localhost:8000/api"
    WIZARD_INITIAL_COUNTRY: str = "GH"
    WIZARD_ADVANCE_DELAY_SECONDS: float = 0.3

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def meetings_configured(self) -> bool:
        return bool(
            self.AZURE_CLIENT_ID and self.AZURE_CLIENT_SECRET and self.AZURE_TENANT_ID
        )


# cria instância global
settings = Settings()
