"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./member_finance.db"

    # Service
    service_name: str = "member-finance"
    log_level: str = "INFO"

    # Dashboard
    recent_transactions_limit: int = 10

    # First administrator created by bootstrap
    bootstrap_admin_name: str = "Administrator"
    bootstrap_admin_email: str = "admin@example.org"


settings = Settings()
