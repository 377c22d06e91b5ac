from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    layout: str = Field(default="html", alias="EMAIL_OUTPUT_LAYOUT")
    display_timezone: str = Field(default="UTC", alias="EMAIL_OUTPUT_DISPLAY_TIMEZONE")
    smtp_timeout: float = Field(default=30.0, alias="EMAIL_OUTPUT_SMTP_TIMEOUT")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
