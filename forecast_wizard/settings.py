"""
Environment-driven settings for the forecast wizard backend.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache

# Critical window = horizon x this many periods before the last observation.
DEFAULT_CRITICAL_WINDOW_MULTIPLIER = 2


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class WizardSettings:
    """Runtime settings, read from the environment at construction."""

    critical_window_multiplier: int = field(
        default_factory=lambda: int(os.getenv(
            "FORECAST_WIZARD_CRITICAL_WINDOW_MULTIPLIER", str(DEFAULT_CRITICAL_WINDOW_MULTIPLIER)
        ))
    )
    dayfirst: bool = field(default_factory=lambda: _env_bool("FORECAST_WIZARD_DAYFIRST"))

    # Validation service boundary
    validation_url: str = field(
        default_factory=lambda: os.getenv("FORECAST_WIZARD_VALIDATION_URL", "http://localhost:8000")
    )
    validation_timeout: float = field(
        default_factory=lambda: float(os.getenv("FORECAST_WIZARD_VALIDATION_TIMEOUT", "30"))
    )
    validation_retries: int = field(
        default_factory=lambda: int(os.getenv("FORECAST_WIZARD_VALIDATION_RETRIES", "1"))
    )

    max_upload_mb: int = field(
        default_factory=lambda: int(os.getenv("FORECAST_WIZARD_MAX_UPLOAD_MB", "100"))
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> WizardSettings:
    """Process-wide settings instance."""
    return WizardSettings()
