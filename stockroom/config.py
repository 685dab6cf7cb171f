# stockroom/config.py
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

load_dotenv(env_path)


class Settings(BaseSettings):
    API_URL: str = "http://127.0.0.1:5000/api"
    API_TOKEN: Optional[str] = None
    REQUEST_TIMEOUT: float = 10.0

    # Initial page size of every resource store
    PAGE_SIZE: int = 10

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=str(env_path), env_prefix="STOCKROOM_", extra="ignore")


settings = Settings()
