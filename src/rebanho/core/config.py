from datetime import date
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# .env file lives in the project root (parent of src/)
# Only use if it exists (CI uses environment variables directly)
# Path: core/config.py -> rebanho -> src -> project root -> .env
_ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"
_ENV_FILE = _ENV_FILE if _ENV_FILE.exists() else None


@lru_cache
def get_cache_dir() -> Path:
    """Get the cache directory (.cache/ in workspace root).

    Looks for project root by finding .git or pyproject.toml,
    then returns .cache/ within that root.
    """
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / ".git").exists() or (parent / "pyproject.toml").exists():
            cache_dir = parent / ".cache"
            cache_dir.mkdir(exist_ok=True)
            return cache_dir
    # Fallback to current working directory
    cache_dir = Path.cwd() / ".cache"
    cache_dir.mkdir(exist_ok=True)
    return cache_dir


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Generative AI API (herd assistant)
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"

    # AI call quota: at most N calls per window
    ai_rate_limit_calls: int = 15
    ai_rate_limit_window_ms: int = 60_000
    # Upper bound for wait_and_acquire; None waits until a slot frees up
    ai_max_wait_ms: int | None = None

    # Animals born before this date are left out of DEP baselines and weight KPIs
    reference_period_start: date = date(2025, 1, 1)

    # Slaughter targets are expressed in arrobas of live weight
    arroba_kg: float = 15.0
    default_slaughter_arrobas: float = 18

    # Herd export (JSON). Defaults to .cache/herd.json when unset
    herd_file: Path | None = None

    log_level: str = "INFO"


settings = Settings()
