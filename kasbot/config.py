from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_ALLOWED_ORIGINS = "https://egy-tronix.com,https://www.egy-tronix.com"


@dataclass(frozen=True)
class Settings:
    """Configuration container for knowledge sources, CORS, and refresh limits."""
    knowledge_path: Path
    allowed_origins: Tuple[str, ...]
    scrape_enabled: bool
    refresh_interval_hours: float
    scrape_timeout: float
    scrape_user_agent: str
    contact_url: str
    error_status_code: int
    strip_emoji: bool
    max_spec_bullets: int
    log_level: str


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: Invalid numeric env values raise ValueError.
    If Removed: App cannot locate knowledge or configure CORS and fails at startup.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve the knowledge path, then build Settings.
    knowledge_path = os.getenv("KNOWLEDGE_PATH")
    if knowledge_path:
        knowledge_file = Path(knowledge_path)
    else:
        knowledge_file = (BASE_DIR / ".." / "resources" / "knowledge.json").resolve()

    origins = os.getenv("CORS_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
    error_status_code = int(os.getenv("ERROR_STATUS_CODE", "200"))
    if error_status_code not in (200, 500):
        raise ValueError(f"ERROR_STATUS_CODE must be 200 or 500, got {error_status_code}")

    return Settings(
        knowledge_path=knowledge_file,
        allowed_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
        scrape_enabled=_env_flag("SCRAPE_ENABLED", "0"),
        refresh_interval_hours=float(os.getenv("REFRESH_INTERVAL_HOURS", "6")),
        scrape_timeout=float(os.getenv("SCRAPE_TIMEOUT", "15")),
        scrape_user_agent=os.getenv("SCRAPE_USER_AGENT", "KASBot/1.0"),
        contact_url=os.getenv("CONTACT_URL", ""),
        error_status_code=error_status_code,
        strip_emoji=_env_flag("STRIP_EMOJI", "0"),
        max_spec_bullets=int(os.getenv("MAX_SPEC_BULLETS", "8")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}
