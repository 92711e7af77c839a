"""Application settings. Defaults can be overridden with MEMORY_CHESS_<FIELD> environment variables."""

import logging
import os
from typing import Self

from pydantic import BaseModel, Field

ENV_PREFIX = "MEMORY_CHESS_"


class Settings(BaseModel):
    database_url: str = "sqlite:///memory_chess.db"
    initial_rating: int = Field(default=1200, ge=0)
    # Points subtracted from the accuracy for every piece placed beyond the original count
    extra_piece_penalty: int = Field(default=10, ge=0)
    leaderboard_limit: int = Field(default=200, gt=0)
    max_generation_attempts: int = Field(default=1000, gt=0)
    # Players kept in memory at once, and how long an untouched session survives
    max_active_players: int = Field(default=10_000, gt=0)
    session_idle_timeout_seconds: float = Field(default=3600, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Self:
        """Pick up every field that has a matching environment variable. Pydantic takes care of the type conversion."""
        overrides = {
            name: os.environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in os.environ
        }
        return cls(**overrides)


def configure_logging(level: str = "INFO") -> None:
    """Only meant for the application entrypoint. Library modules just create their own logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
