# ledger_sync/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, List, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./ledger_sync.db"

    # Shared secret expected from the ledger system on every /api/1c call
    ONEC_SECRET: str = ""

    # Buyer bearer tokens
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Paging limits for the exchange surface
    QUEUE_DEFAULT_LIMIT: int = 50
    QUEUE_MAX_LIMIT: int = 200
    SYNC_RUNS_DEFAULT_LIMIT: int = 50
    SYNC_RUNS_MAX_LIMIT: int = 200
    SYNC_RUN_ITEMS_DEFAULT_LIMIT: int = 200
    SYNC_RUN_ITEMS_MAX_LIMIT: int = 500

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[Path] = None

    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
