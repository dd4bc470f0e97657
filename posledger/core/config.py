from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "POS Ledger"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "posledger"
    POSTGRES_PORT: int = 5432
    SQLALCHEMY_DATABASE_URI: Optional[str] = None
    
    # Business day used for journal numbering
    TIMEZONE: str = "UTC"
    
    # Stock ledger
    JOURNAL_PREFIX: str = "ADJ"
    JOURNAL_SEQUENCE_PAD: int = 4
    LOW_STOCK_THRESHOLD: int = 10
    SUMMARY_CHUNK_SIZE: int = 100
    ENFORCE_STOCK_ON_SALE: bool = False  # re-check stock inside the product lock
    REJECT_NEGATIVE_STOCK: bool = False  # raise instead of clamping at zero
    
    # Locking
    LOCK_TIMEOUT_MS: int = 5000
    LOCK_RETRY_ATTEMPTS: int = 3
    LOCK_RETRY_BACKOFF_SECONDS: float = 0.2
    
    @property
    def DATABASE_URL(self) -> str:
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI
        return f"postgresql+psycopg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
    
    class Config:
        env_file = ".env"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
