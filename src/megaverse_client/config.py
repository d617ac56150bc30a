from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_ROOT = "https://challenge.crossmint.io/api/"


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    candidate_id: str = Field("", validation_alias=AliasChoices("CANDIDATE_ID", "candidate_id"))
    api_root: str = Field(
        DEFAULT_API_ROOT, validation_alias=AliasChoices("MEGAVERSE_API_ROOT", "api_root")
    )
    timeout_s: float = Field(
        30.0, gt=0, validation_alias=AliasChoices("MEGAVERSE_TIMEOUT_S", "timeout_s")
    )

    @property
    def base_url(self) -> str:
        """API root with exactly one trailing slash, so relative paths resolve under it."""
        return self.api_root.rstrip("/") + "/"


@lru_cache()
def get_settings() -> ClientSettings:
    return ClientSettings()
