"""Runtime settings, read from ``TRIAS_*`` environment variables or ``.env``.

The evaluation (as-of) year is the only value derived from the wall clock,
and only when it is not set explicitly.
"""

from __future__ import annotations

import json
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from trias_indicators.reference.status import (
    DEFAULT_CONFIDENCE,
    DEFAULT_LATENCY,
    DEFAULT_WINDOW_LENGTH,
    MIN_POSITIVE_YEARS_GAM,
)


def last_complete_year(today: date | None = None) -> int:
    """Return the most recent calendar year that has fully elapsed."""
    return (today or date.today()).year - 1


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="TRIAS_", env_file=".env", extra="ignore")

    app_name: str = "trias-indicators"
    app_env: str = "development"
    debug: bool = False

    data_dir: Path = Path("data")
    cube_file: str = "be_alientaxa_cube.tsv"
    taxonomy_file: str = "be_alientaxa_info.tsv"
    membership_file: str = "protected_areas_cells.tsv"
    areas_file: str = "protected_areas_metadata.tsv"
    concern_file: str = "union_list.tsv"
    checklist_file: str = "checklist.tsv"

    as_of_year: int = Field(default_factory=last_complete_year)
    window_length: int = Field(default=DEFAULT_WINDOW_LENGTH, ge=1)
    appearing_window: int = Field(default=1, ge=1)
    latency: int = Field(default=DEFAULT_LATENCY, ge=1)
    min_positive_years: int = Field(default=MIN_POSITIVE_YEARS_GAM, ge=2)
    confidence: float = Field(default=DEFAULT_CONFIDENCE, gt=0, lt=1)
    first_year: int = 1950

    excluded_taxa: Annotated[list[int], NoDecode] = Field(default_factory=list)

    gbif_api: str = "https://api.gbif.org/v1"
    taxonomy_ttl_days: int = 90
    http_timeout: float = Field(default=30.0, gt=0)
    http_retries: int = Field(default=4, ge=0)
    http_backoff: float = Field(default=2.0, ge=0)

    @field_validator("excluded_taxa", mode="before")
    @classmethod
    def _split_keys(cls, value: object) -> object:
        # TRIAS_EXCLUDED_TAXA=123,456 or a JSON list
        if isinstance(value, str):
            if value.strip().startswith("["):
                return json.loads(value)
            return [int(v) for v in value.split(",") if v.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
