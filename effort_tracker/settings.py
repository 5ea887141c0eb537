from __future__ import annotations
import logging
from datetime import date
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DEPARTMENTS = [
    "Technology",
    "AMP",
    "Sales/Fundraise",
    "Debrief",
    "Coverage",
    "Asset Monitoring",
    "CRE",
    "Residental",
    "Equity Enhancer Product",
    "Co-Investments",
]

DEFAULT_ENTRY_TYPES = ["Core", "Project"]


class Settings(BaseSettings):
    app_title: str = "Analyst Effort Tracker"
    database_url: str = "sqlite:///./effort_tracker.db"

    max_deal_name_length: int = 50
    max_description_length: int = 1000
    max_hours_per_entry: float = 200.0
    min_task_date: date = date(2020, 1, 1)

    rating_min: int = 1
    rating_max: int = 10

    departments: List[str] = DEFAULT_DEPARTMENTS
    entry_types: List[str] = DEFAULT_ENTRY_TYPES

    credentials_file: str = "credentials.json"
    credentials_pepper: str = "dev-pepper"
    directory_url: Optional[str] = None
    admin_identities: List[str] = []

    request_timeout_seconds: float = 10.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

settings = Settings()

_logging_configured = False

def configure_logging(level: str | None = None) -> None:
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True
