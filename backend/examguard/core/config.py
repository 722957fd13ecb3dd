import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    port: int = 8000
    environment: str = "development"
    log_level: str = "INFO"

    postgres_user: str = os.getenv("POSTGRES_USER", "user")
    postgres_password: str = os.getenv("POSTGRES_PASSWORD", "password")
    postgres_db: str = os.getenv("POSTGRES_DB", "examguard_db")
    postgres_host: str = os.getenv("POSTGRES_HOST", "db")
    postgres_port: int = 5432

    # full URL wins over the postgres_* parts (sqlite in tests)
    sqlalchemy_database_url: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.sqlalchemy_database_url:
            return self.sqlalchemy_database_url
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    cors_origins_str: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins_str.split(",")]

    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    cache_default_ttl: int = 600

    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

    default_timezone: str = "UTC"
    timezone_display_format: str = "%d.%m.%Y, %H:%M:%S"

    exam_sweep_interval_seconds: int = 3600
    exam_sweep_inprocess: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
