"""
DHBNN Service - Configuration
=============================
Centralised settings for logging, storage, follow-up timing and reports.
Loads overrides from the project-level .env file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

# ── Paths ───────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    return int(raw) if raw.strip() else default


@dataclass
class Settings:
    """Runtime settings, read once from the environment."""

    APP_NAME: str = field(default_factory=lambda: os.getenv("APP_NAME", "DHBNN Clinical Assessment"))
    APP_VERSION: str = field(default_factory=lambda: os.getenv("APP_VERSION", "1.0.0"))

    # Logging
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    LOG_FILE: str = field(default_factory=lambda: os.getenv("LOG_FILE", ""))

    # Patient store: "memory" or "disk"
    PATIENT_STORE_BACKEND: str = field(default_factory=lambda: os.getenv("PATIENT_STORE_BACKEND", "memory"))
    PATIENT_STORE_DIR: str = field(
        default_factory=lambda: os.getenv("PATIENT_STORE_DIR", str(PROJECT_ROOT / ".dhbnn_store"))
    )

    # Follow-up
    FOLLOW_UP_DELAY_HOURS: int = field(default_factory=lambda: _env_int("FOLLOW_UP_DELAY_HOURS", 48))
    # 0 means "same as FOLLOW_UP_DELAY_HOURS"; lower it for manual testing
    NOTIFICATION_DELAY_SECONDS: int = field(default_factory=lambda: _env_int("NOTIFICATION_DELAY_SECONDS", 0))

    # Treatment sheets
    REPORTS_DIR: str = field(default_factory=lambda: os.getenv("REPORTS_DIR", "reports"))

    @property
    def notification_delay_ms(self) -> int:
        seconds = self.NOTIFICATION_DELAY_SECONDS or self.FOLLOW_UP_DELAY_HOURS * 3600
        return seconds * 1000


settings = Settings()
