"""Configuration settings for CronTick."""

import logging
import sys
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Crontab
    crontab_path: str = "crontab"
    location_paths: str = ""  # os.pathsep-separated supplemental search paths
    watch_crontab: bool = True
    delay_start: bool = False

    # Executors
    python_executable: str = sys.executable

    # Diagnostics
    next_match_horizon_days: int = Field(default=1830, gt=0)

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    class Config:
        env_prefix = "CRONTICK_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
