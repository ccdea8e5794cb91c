"""
Application settings for agentcomm.

Values come from AGENTCOMM_* environment variables (optionally loaded from a
.env file); pydantic converts them to the field types.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel

ENV_PREFIX = "AGENTCOMM_"


class Settings(BaseModel):
    """Runtime configuration."""
    database_url: str = "sqlite+aiosqlite:///./agentcomm.db"
    debug: bool = False
    log_level: str | None = None
    log_json: bool = False


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process; unset or empty variables keep their defaults."""
    load_dotenv()
    values = {}
    for field in Settings.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{field.upper()}")
        if raw:
            values[field] = raw
    return Settings(**values)
