"""
Application settings, read from the environment (and a local .env file).
"""

import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


class Settings(BaseModel):
    database_url: str = "sqlite:///./labs_reservation.db"
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    seed_demo_data: bool = True
    sqlite_busy_timeout: float = 15.0

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}
        if os.getenv("DATABASE_URL"):
            values["database_url"] = os.environ["DATABASE_URL"]
        if os.getenv("LOG_LEVEL"):
            values["log_level"] = os.environ["LOG_LEVEL"]
        if os.getenv("CORS_ORIGINS"):
            values["cors_origins"] = [
                o.strip() for o in os.environ["CORS_ORIGINS"].split(",") if o.strip()
            ]
        if os.getenv("SEED_DEMO_DATA"):
            values["seed_demo_data"] = os.environ["SEED_DEMO_DATA"] not in ("0", "false", "no")
        if os.getenv("SQLITE_BUSY_TIMEOUT"):
            values["sqlite_busy_timeout"] = os.environ["SQLITE_BUSY_TIMEOUT"]
        return cls(**values)


settings = Settings.from_env()
