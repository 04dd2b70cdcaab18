"""Runtime settings for the dotoracle service.

Values come from the environment (optionally a `.env` file next to the
package root). Game-balance tables live with their engines; only operational
knobs are read here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]

load_dotenv(REPO_ROOT / ".env")

DEFAULT_DB_PATH = str(REPO_ROOT / "data" / "dotoracle.db")

SUPPORTED_LOCALES = ("en", "ko")


@dataclass(frozen=True)
class Settings:
    db_path: str = DEFAULT_DB_PATH
    openai_api_key: str = ""
    ai_model: str = "gpt-4o-mini"
    ai_timeout: float = 30.0
    ai_max_tokens: int = 500
    rate_limit_per_day: int = 30
    ad_cooldown_ms: int = 2500
    max_clarifier_per_day: int = 1
    max_another_topic_per_day: int = 999
    locale: str = "en"
    log_level: str = "INFO"


def _locale(value: str) -> str:
    value = (value or "").strip().lower()
    return value if value in SUPPORTED_LOCALES else "en"


def load_settings() -> Settings:
    return Settings(
        db_path=os.getenv("DOTORACLE_DB_PATH", DEFAULT_DB_PATH),
        openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        ai_model=os.getenv("DOTORACLE_AI_MODEL", "gpt-4o-mini"),
        ai_timeout=float(os.getenv("DOTORACLE_AI_TIMEOUT", "30")),
        ai_max_tokens=int(os.getenv("DOTORACLE_AI_MAX_TOKENS", "500")),
        rate_limit_per_day=int(os.getenv("DOTORACLE_RATE_LIMIT", "30")),
        ad_cooldown_ms=int(os.getenv("DOTORACLE_AD_COOLDOWN_MS", "2500")),
        max_clarifier_per_day=int(os.getenv("DOTORACLE_MAX_CLARIFIER_PER_DAY", "1")),
        max_another_topic_per_day=int(os.getenv("DOTORACLE_MAX_ANOTHER_TOPIC_PER_DAY", "999")),
        locale=_locale(os.getenv("DOTORACLE_LOCALE", "en")),
        log_level=os.getenv("DOTORACLE_LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
