from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Token and board id are checked per request so the app can boot without them
    MONDAY_TOKEN: Optional[str] = None
    MONDAY_BOARD_ID: Optional[str] = None

    MONDAY_API_URL: str = "https://api.monday.com/v2"
    MONDAY_API_VERSION: str = "2024-01"
    MONDAY_FILES_URL: str = "https://files.monday.com/file/download"

    BOARD_PAGE_SIZE: int = 100
    BOARD_TIMEOUT_SECONDS: float = 15.0

    IMAGE_TIMEOUT_SECONDS: float = 8.0
    IMAGE_CACHE_TTL_SECONDS: int = 900
    IMAGE_CACHE_MAX_ENTRIES: int = 256

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()


def get_settings() -> Settings:
    """Dependency hook, tests override it with their own Settings."""
    return settings
