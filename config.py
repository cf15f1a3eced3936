"""
Application configuration.

All settings are read from environment variables once at import time and
exposed through the module-level ``settings`` object. Tests override
individual attributes (for example ``settings.upload_dir``) directly.
"""
import os
from typing import List

from pydantic import BaseModel

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

MEGABYTE = 1024 * 1024


class Settings(BaseModel):
    """
    Runtime settings for the Excel Visualizer API.

    Attributes:
        database_url: SQLAlchemy connection URL
        upload_dir: Directory where uploaded spreadsheets are stored
        max_file_size: Upload size cap in bytes
        log_dir: Directory for the daily log files
        log_level: Root logging level name
        cors_origins: Origins allowed by the CORS middleware
        app_env: "development" exposes exception text in 500 responses
        default_page_size: Page size for list endpoints
        default_data_page_size: Page size for file row data
    """
    database_url: str = "sqlite:///" + os.path.join(BASE_DIR, "excel_visualizer.db")
    upload_dir: str = os.path.join(BASE_DIR, "uploads")
    max_file_size: int = 10 * MEGABYTE
    log_dir: str = os.path.join(BASE_DIR, "logs")
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    app_env: str = "development"
    default_page_size: int = 10
    default_data_page_size: int = 100

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"

    @property
    def max_file_size_label(self) -> str:
        """Human readable size cap used in error messages, e.g. '10MB'."""
        return f"{self.max_file_size // MEGABYTE}MB"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}
        if os.getenv("DATABASE_URL"):
            values["database_url"] = os.environ["DATABASE_URL"]
        if os.getenv("UPLOAD_DIR"):
            values["upload_dir"] = os.environ["UPLOAD_DIR"]
        if os.getenv("MAX_FILE_SIZE"):
            values["max_file_size"] = int(os.environ["MAX_FILE_SIZE"])
        if os.getenv("LOG_DIR"):
            values["log_dir"] = os.environ["LOG_DIR"]
        if os.getenv("LOG_LEVEL"):
            values["log_level"] = os.environ["LOG_LEVEL"].upper()
        if os.getenv("CORS_ORIGINS"):
            values["cors_origins"] = [
                origin.strip() for origin in os.environ["CORS_ORIGINS"].split(",") if origin.strip()
            ]
        if os.getenv("APP_ENV"):
            values["app_env"] = os.environ["APP_ENV"]
        if os.getenv("DEFAULT_PAGE_SIZE"):
            values["default_page_size"] = int(os.environ["DEFAULT_PAGE_SIZE"])
        if os.getenv("DEFAULT_DATA_PAGE_SIZE"):
            values["default_data_page_size"] = int(os.environ["DEFAULT_DATA_PAGE_SIZE"])
        return cls(**values)


settings = Settings.from_env()
