from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Service settings, read from environment variables or a zynchat.env file.
    """

    model_config = SettingsConfigDict(
        env_file="zynchat.env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Storage ---
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "zynchat"
    # "memory" keeps everything in-process; useful for local runs and tests
    STORE_BACKEND: Literal["mongo", "memory"] = "mongo"
    STORE_TIMEOUT_SECONDS: float = 5.0

    # --- Delivery ---
    # When enabled, only contacts may message each other
    ENFORCE_CONTACTS: bool = False

    # --- Logging ---
    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
