"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Secure defaults (backend defaults to localhost)
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()


class BackendConfig(BaseModel):
    """Reminder backend (REST API) connection settings."""

    api_url: str = Field(
        default="http://localhost:3000/api", description="Base URL of the reminder REST API"
    )
    request_timeout_seconds: float = Field(
        default=5.0, gt=0.0, description="Timeout for a single backend request"
    )

    @field_validator("api_url")
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_url must start with http:// or https://")
        return v.rstrip("/")


class SchedulerConfig(BaseModel):
    """Alert scheduling configuration."""

    tick_interval_seconds: float = Field(
        default=60.0, gt=0.0, description="Interval between scheduler ticks"
    )
    pre_alert_minutes: float = Field(
        default=5.0, gt=0.0, description="How long before the due time the pre-alert window opens"
    )
    due_alert_grace_minutes: float = Field(
        default=1.0, gt=0.0, description="How long after the due time the due alert may still fire"
    )
    cache_refresh_interval_seconds: float | None = Field(
        default=None, gt=0.0, description="Periodic reminder refresh; None refreshes on demand only"
    )

    @model_validator(mode="after")
    def windows_are_sampled(self) -> "SchedulerConfig":
        """A tick must land in every window under normal operation."""
        if self.tick_interval_seconds > self.due_alert_grace_minutes * 60:
            raise ValueError("tick_interval_seconds must not exceed the due alert window")
        return self


class NotificationConfig(BaseModel):
    """Desktop notification configuration."""

    enabled: bool = Field(default=True, description="Grant desktop notifications when asked")
    app_name: str = Field(default="Medical Tracker", description="Application name shown")
    tag: str = Field(default="medical-reminder", description="Notification grouping tag")
    auto_close_seconds: float = Field(
        default=10.0, gt=0.0, description="Notification visibility window"
    )
    permission_request_delay_seconds: float = Field(
        default=3.0, ge=0.0, description="Delay before the one-time permission request"
    )


class SoundConfig(BaseModel):
    """Audible alert configuration."""

    enabled: bool = Field(default=True, description="Play sound cues for alerts")
    sample_rate: int = Field(default=44100, gt=0, description="Synthesis sample rate")
    volume: float = Field(default=0.3, gt=0.0, le=1.0, description="Peak gain of alert tones")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    backend: BackendConfig = Field(default_factory=BackendConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    sound: SoundConfig = Field(default_factory=SoundConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    def _parse_optional_float(val: str | None) -> float | None:
        if val is None or not val.strip():
            return None
        return float(val)

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    backend_config = BackendConfig(
        api_url=os.getenv("REMINDER_API_URL", "http://localhost:3000/api"),
        request_timeout_seconds=float(os.getenv("REMINDER_API_TIMEOUT_SECONDS", "5.0")),
    )

    scheduler_config = SchedulerConfig(
        tick_interval_seconds=float(os.getenv("TICK_INTERVAL_SECONDS", "60.0")),
        pre_alert_minutes=float(os.getenv("PRE_ALERT_MINUTES", "5.0")),
        due_alert_grace_minutes=float(os.getenv("DUE_ALERT_GRACE_MINUTES", "1.0")),
        cache_refresh_interval_seconds=_parse_optional_float(
            os.getenv("CACHE_REFRESH_INTERVAL_SECONDS")
        ),
    )

    notification_config = NotificationConfig(
        enabled=_parse_bool(os.getenv("DESKTOP_NOTIFICATIONS"), True),
        app_name=os.getenv("NOTIFICATION_APP_NAME", "Medical Tracker"),
        auto_close_seconds=float(os.getenv("NOTIFICATION_AUTO_CLOSE_SECONDS", "10.0")),
        permission_request_delay_seconds=float(
            os.getenv("NOTIFICATION_PERMISSION_DELAY_SECONDS", "3.0")
        ),
    )

    sound_config = SoundConfig(
        enabled=_parse_bool(os.getenv("ALERT_SOUND"), True),
        volume=float(os.getenv("ALERT_SOUND_VOLUME", "0.3")),
    )

    # Logging config
    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    # Application config
    return AppConfig(
        environment=environment,
        debug=debug,
        backend=backend_config,
        scheduler=scheduler_config,
        notifications=notification_config,
        sound=sound_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


# Configuration validation and helpers
def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")

        if not config.notifications.enabled:
            print("⚠️  Desktop notifications disabled, alerts will be sound-only")

        if not config.sound.enabled:
            print("⚠️  Alert sounds disabled")

    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n🌐 BACKEND")
    print(f"API URL: {config.backend.api_url}")
    print(f"Request Timeout: {config.backend.request_timeout_seconds}s")

    print("\n⏰ SCHEDULER")
    print(f"Tick Interval: {config.scheduler.tick_interval_seconds}s")
    print(f"Pre-alert Window: {config.scheduler.pre_alert_minutes}m")
    print(f"Due Alert Window: {config.scheduler.due_alert_grace_minutes}m")

    print("\n🔔 ALERTS")
    print(f"Desktop Notifications: {config.notifications.enabled}")
    print(f"Auto-close: {config.notifications.auto_close_seconds}s")
    print(f"Sound: {config.sound.enabled} (volume {config.sound.volume:.0%})")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()
