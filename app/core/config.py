from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "SaudaLedger"
    APP_PORT: int = 9210
    DEBUG: bool = False
    
    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "sauda_ledger"
    POSTGRES_PORT: int = 5432
    DATABASE_URI: Optional[str] = None  # e.g. sqlite:///./sauda.db
    
    # Logging
    LOGS_PATH: str = "logs"
    LOG_LEVEL: str = "INFO"
    
    # Trading calendar & units
    TIMEZONE: str = "Asia/Kolkata"
    FINANCIAL_YEAR_START_MONTH: int = 4
    KG_PER_PACK: int = 1000
    KG_PER_RATE_UNIT: int = 10
    
    # Background work
    BACKFILL_ENABLED: bool = True
    NIGHTLY_SNAPSHOT_TIME: str = "23:30"
    
    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URI:
            return self.DATABASE_URI
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
    
    class Config:
        env_file = ".env"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
