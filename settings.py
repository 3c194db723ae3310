"""Service configuration loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration; every field can be set as NATAL_<FIELD>."""

    model_config = SettingsConfigDict(
        env_prefix="NATAL_",
        env_file=".env",
        extra="ignore",
    )

    ephemeris_mode: Literal["mock", "swisseph"] = Field(
        default="mock",
        description="Position source: deterministic mock or Swiss Ephemeris",
    )
    ephemeris_path: Optional[Path] = Field(
        default=None,
        description="Directory with Swiss Ephemeris .se1 files (Moshier is used otherwise)",
    )
    house_system: str = "Placidus"
    include_minor_aspects: bool = False
    orb_factor: float = Field(default=1.0, ge=0.1, le=3.0)
    profiles_path: Path = Path("profiles.json")
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "WARNING"
    log_file: Optional[Path] = None

    @field_validator("ephemeris_path", "log_file", mode="before")
    @classmethod
    def _expand_optional_path(cls, value):
        if value in {None, ""}:
            return None
        return Path(value).expanduser()

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
