"""Runtime settings read from ``EXACTXO_*`` environment variables."""

from __future__ import annotations

import os
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .ai import DIFFICULTIES, IMPOSSIBLE

ENV_PREFIX = "EXACTXO_"


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    difficulty: str = IMPOSSIBLE
    think_delay: Tuple[float, float] = (0.3, 0.6)
    log_level: str = "INFO"

    @field_validator("difficulty")
    @classmethod
    def ensure_supported_difficulty(cls, value: str) -> str:
        value = value.lower()
        if value not in DIFFICULTIES:
            raise ValueError(
                f"Unsupported difficulty {value!r}. Choose one of {', '.join(DIFFICULTIES)}."
            )
        return value

    @field_validator("think_delay", mode="before")
    @classmethod
    def parse_delay(cls, value: object) -> object:
        # "0.3,0.6" or a single "0.5"
        if isinstance(value, str):
            parts = [p.strip() for p in value.split(",") if p.strip()]
            if len(parts) == 1:
                parts = parts * 2
            return tuple(parts)
        return value

    @field_validator("log_level")
    @classmethod
    def ensure_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level {value!r}")
        return value

    @model_validator(mode="after")
    def ensure_delay_order(self) -> "Settings":
        low, high = self.think_delay
        if low < 0 or high < low:
            raise ValueError("think_delay must be 0 <= min <= max")
        return self


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    values = {}
    for name in Settings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in env:
            values[name] = env[key]
    return Settings(**values)
