from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .policy import BackoffPolicy


class DispatchSettings(BaseSettings):
    """Retry/backoff knobs, read from MEGAVERSE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MEGAVERSE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    max_retries: int = Field(5, ge=0)
    initial_delay_ms: float = Field(500, ge=0)
    retry_base_delay_ms: float = Field(1000, ge=0)
    backoff_growth: float = Field(1.2, gt=1)
    max_delay_ms: Optional[float] = None

    def to_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            base_delay_ms=self.retry_base_delay_ms,
            growth=self.backoff_growth,
            initial_delay_ms=self.initial_delay_ms,
            max_delay_ms=self.max_delay_ms,
        )


@lru_cache()
def get_dispatch_settings() -> DispatchSettings:
    return DispatchSettings()
