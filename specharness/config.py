"""Configuration loaded from environment (.env) and defaults."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the project root .env file; works regardless of CWD
_THIS_DIR = Path(__file__).resolve().parent          # specharness/
_PROJECT_ROOT = _THIS_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"

    # Groq (OpenAI-compatible endpoint)
    groq_api_key: str | None = None
    groq_base_url: str = "https://api.groq.com/openai/v1"

    # Anthropic
    anthropic_api_key: str | None = None
    anthropic_base_url: str | None = None

    # Per chat-call timeout, milliseconds
    provider_timeout_ms: int = 60_000

    # Run artifacts root, default ./runs relative to the project root
    specharness_runs_dir: str = "./runs"

    # Persistence switches: DISABLE_RUNS_PERSIST=1 / FORCE_RUNS_PERSIST=1.
    # VERCEL=1 (set by the platform) disables persistence unless forced.
    disable_runs_persist: str | None = None
    force_runs_persist: str | None = None
    vercel: str | None = None

    # Time zone used for report timestamps
    report_timezone: str = "Asia/Jakarta"

    # CORS origins (comma-separated). Defaults to localhost dev.
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_origin_regex: str | None = None

    # Server port (hosting platforms inject PORT)
    port: int = 8000

    @property
    def runs_dir(self) -> Path:
        """Runs directory as an absolute Path.

        Relative paths are resolved against the project root (not CWD).
        """
        p = Path(self.specharness_runs_dir)
        if not p.is_absolute():
            return (_PROJECT_ROOT / p).resolve()
        return p.resolve()

    @property
    def provider_timeout_s(self) -> float:
        return max(1, self.provider_timeout_ms) / 1000.0

    @property
    def persistence_enabled(self) -> bool:
        """Whether run artifacts may be written to local disk."""
        if (self.disable_runs_persist or "").strip() == "1":
            return False
        if (self.force_runs_persist or "").strip() == "1":
            return True
        if (self.vercel or "").strip() == "1":
            return False
        return True

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
