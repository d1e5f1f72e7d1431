"""Core configuration for the negpath mutation engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NEGPATH_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "negpath"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    log_eligibility: bool = False

    # ── Selection ────────────────────────────────────────────────────────
    selection_seed: int | None = None
    selection_strategy: Literal["weighted", "uniform"] = "weighted"
    default_weight: float = 1.0
    min_weight: float = 0.1
    max_weight: float = 50.0

    # ── Mutations ────────────────────────────────────────────────────────
    # Never registered with the conduit controller.
    invalid_conduit_key: str = "0x" + "ba" * 32

    @property
    def invalid_conduit_key_bytes(self) -> bytes:
        return bytes.fromhex(self.invalid_conduit_key.removeprefix("0x"))


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
