"""
Service settings, read from ``DASHBOARD_*`` environment variables.
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    state_file: Path = Field(
        default=Path("dashboard_state.json"),
        description="JSON file holding annotations and the selected data source",
    )
    log_level: str = "INFO"
    mock_trade_count: int = Field(default=150, ge=1)
    mock_seed: Optional[int] = None
    allowed_origins: List[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
