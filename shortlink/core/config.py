from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "URL Shortener"
    PORT: int = 8080
    BASE_URL: str = "http://localhost:8080"

    # Persistent store. DATABASE_URL wins when set, otherwise it is built from the POSTGRES_* parts.
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "url_shortener"
    STORE_TIMEOUT_SECONDS: float = 5.0

    # Fast cache holding the pre-generated code pool
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    REDIS_TIMEOUT_SECONDS: float = 2.0
    CODE_QUEUE_NAME: str = "short_code_queue"

    REQUEST_TIMEOUT_SECONDS: float = 5.0
    CODE_GENERATION_MAX_ATTEMPTS: int = 5
    CLICK_WORKERS: int = 4
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
