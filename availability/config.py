"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("availability.config")


class Settings(BaseSettings):
    # Grid geometry
    pixels_per_hour: int = 100
    min_duration_minutes: int = 15
    max_duration_minutes: int = 480

    # Touch
    long_press_ms: int = 500
    long_press_tolerance_px: float = 10.0
    long_press_vibration_ms: int = 50
    drag_vibration_ms: int = 30

    # Viewer's local frame (IANA name)
    display_timezone: str = "UTC"

    # Google Calendar
    google_service_account_json: str = ""
    google_calendar_id: str = "primary"

    # Confirmed-state polling after remote writes
    refresh_initial_delay: float = 0.5
    refresh_backoff: float = 2.0
    refresh_attempts: int = 4

    # Feedback events kept per grid broadcaster
    feedback_log_size: int = 500

    # Caller identity used when DEBUG=true and no bearer token is sent
    dev_caller: str = ""

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []
        _placeholders = {"path/to/service-account.json"}

        if self.pixels_per_hour <= 0:
            raise ValueError("PIXELS_PER_HOUR must be positive.")

        if self.min_duration_minutes <= 0:
            raise ValueError("MIN_DURATION_MINUTES must be positive.")

        if self.min_duration_minutes > self.max_duration_minutes:
            raise ValueError(
                "MIN_DURATION_MINUTES cannot exceed MAX_DURATION_MINUTES "
                f"({self.min_duration_minutes} > {self.max_duration_minutes})."
            )

        if self.feedback_log_size < 1:
            raise ValueError("FEEDBACK_LOG_SIZE must be positive.")

        if self.refresh_attempts < 1:
            warnings.append(
                "REFRESH_ATTEMPTS < 1 — remote writes will never be confirmed."
            )

        # Google Calendar: warn if unset or placeholder
        if not self.google_service_account_json:
            warnings.append(
                "GOOGLE_SERVICE_ACCOUNT_JSON not set — calendar integration disabled."
            )
        elif self.google_service_account_json in _placeholders:
            warnings.append(
                "GOOGLE_SERVICE_ACCOUNT_JSON is a placeholder — calendar integration disabled."
            )

        return warnings


settings = Settings()
