import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///data/contacts.db"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_env() -> None:
    """Load .env from the working directory if present.

    Variables already set in the environment win over the file.
    """
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _log_level_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    level = raw.strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"{name} must be one of {', '.join(LOG_LEVELS)}, got {raw!r}")
    return level


@dataclass
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    max_attempts: int = 3
    retry_delay_ms: int = 20
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @property
    def retry_delay(self) -> float:
        """Base retry delay in seconds."""
        return self.retry_delay_ms / 1000.0

    @classmethod
    def from_env(cls) -> "Settings":
        log_dir = os.getenv("CONTACTLINK_LOG_DIR")
        return cls(
            database_url=os.getenv("CONTACTLINK_DATABASE_URL") or DEFAULT_DATABASE_URL,
            max_attempts=_int_env("CONTACTLINK_MAX_ATTEMPTS", 3),
            retry_delay_ms=_int_env("CONTACTLINK_RETRY_DELAY_MS", 20),
            log_level=_log_level_env("CONTACTLINK_LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir) if log_dir else None,
        )
