import os
from pydantic import BaseModel


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class RetryConfig(BaseModel):
    max_retries: int = 3
    initial_delay_ms: int = 2000
    multiplier: float = 2
    max_delay_ms: int = 8000


class JournalConfig(BaseModel):
    storage_key: str = "smart-trader-journal-v1"
    max_entries: int = 50
    thumbnail_max_size: int = 200
    thumbnail_quality: int = 70  # JPEG quality, 0.7 on a 0..1 scale


class Settings(BaseModel):
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    vision_model: str = os.getenv("VISION_MODEL", "gpt-4o-mini")

    demo_mode: bool = _env_bool("DEMO_MODE")
    demo_delay_sec: float = float(os.getenv("DEMO_DELAY_SEC", "2"))
    summary_language: str = os.getenv("SUMMARY_LANGUAGE", "Indonesian")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    journal_dir: str = os.getenv("JOURNAL_DIR", "./storage/journal")
    analyze_cooldown_sec: float = float(os.getenv("ANALYZE_COOLDOWN_SEC", "10"))

    retry: RetryConfig = RetryConfig()
    journal: JournalConfig = JournalConfig()

settings = Settings()
