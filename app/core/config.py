from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./turns.db"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Comma-separated list of allowed frontend origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Supabase Auth
    SUPABASE_URL: str = ""
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    JWKS_TIMEOUT_SECONDS: float = 10.0

    # Identity used for audit records written outside a user request
    SYSTEM_ACTOR_ID: str = "system"
    SYSTEM_ACTOR_EMAIL: str = "system@turns.local"

    # Resend (approval emails)
    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    NOTIFICATION_FROM_EMAIL: str = "notifications@turnsmanagement.com"
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0

    # Used to build links in emails
    APP_URL: str = "http://localhost:3000"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
