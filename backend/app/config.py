"""Application configuration using Pydantic Settings."""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Database
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_pass: str = "postgres"
    db_name: str = "campaign_messaging"
    database_url: Optional[str] = None

    @property
    def get_database_url(self) -> str:
        """Get the database URL, either from environment or constructed from components."""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_pass}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Redis (Celery broker for the scheduled-publish worker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_user: Optional[str] = "default"
    redis_password: Optional[str] = None
    redis_url: Optional[str] = None

    @property
    def get_redis_url(self) -> str:
        """Get the Redis URL, either from environment or constructed from components."""
        if self.redis_url:
            return self.redis_url

        user_pass = ""
        if self.redis_password:
            user_pass = f"{self.redis_user or 'default'}:{self.redis_password}@"
        elif self.redis_user and self.redis_user != "default":
            user_pass = f"{self.redis_user}@"

        return f"redis://{user_pass}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Azure OpenAI
    azure_ai_endpoint: str = ""
    azure_ai_api_key: str = ""
    azure_openai_api_version: str = "2024-02-15-preview"
    azure_openai_deployment: str = "gpt-4.1"

    # Resend (default sender identity; campaigns may override it)
    resend_api_key: str = ""
    resend_from_email: str = "onboarding@resend.dev"
    resend_from_name: str = "Campaign HQ"
    resend_reply_to: Optional[str] = None

    # Publishing
    publish_timeout_seconds: float = 30.0
    publish_poll_interval_seconds: int = 60
    simulate_social_platforms: bool = True

    # Audience profiles (JSON catalog; empty means the built-in catalog)
    audience_profiles_file: str = ""

    # Election data import
    election_data_dir: str = "./data/elections"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
