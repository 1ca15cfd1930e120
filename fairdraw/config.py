"""Engine configuration."""
from functools import lru_cache
import logging

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

# Loop indices are hashed as big-endian unsigned 32-bit integers.
MAX_DECK_SIZE = 2**32


class Settings(BaseSettings):
    """Engine settings.

    Values are read once from the environment (``FAIRDRAW_`` prefix) or a
    ``.env`` file and are immutable for the lifetime of a session.
    """

    # App
    app_env: str = "development"
    log_level: str = "INFO"
    json_logs: bool = False

    # Deck
    deck_size: int = Field(
        default=52,
        description="Number of cards in the deck, fixed at construction",
    )

    # Authority - 필수 필드
    authority: str = Field(
        ...,
        description="Principal allowed to commit, reveal and reset (required)",
    )

    @field_validator("deck_size")
    @classmethod
    def validate_deck_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("deck_size must be a positive integer")
        if v > MAX_DECK_SIZE:
            raise ValueError(f"deck_size must not exceed {MAX_DECK_SIZE}")
        return v

    @field_validator("authority")
    @classmethod
    def validate_authority(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("authority must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Production always logs JSON."""
        if self.app_env == "production":
            object.__setattr__(self, "json_logs", True)
        return self

    model_config = {
        "env_prefix": "FAIRDRAW_",
        "env_file": ".env",
        "extra": "ignore",
        "frozen": True,
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
