"""Reminder scheduling and sweep settings."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric

NotifierBackend = Literal["console", "disabled"]


class ReminderSettings(BaseSettings):
    """Reminder engine configuration.

    Environment variables use REMINDER_ prefix.
    Example: REMINDER_SWEEP_SECRET=change-me, REMINDER_SCHEDULER_ENABLED=true
    """

    # ──────────────────────────────────────────────────────────────
    # Sweep trigger
    # ──────────────────────────────────────────────────────────────

    sweep_secret: SecretStr | None = Field(
        default=None,
        description="Shared secret expected as 'Bearer <secret>'. Unset rejects every trigger.",
    )

    sweep_horizon_seconds: int = Field(
        default=300,
        ge=1,
        le=86_400,
        description="Look-ahead window: pending reminders due within now..now+horizon are processed",
    )

    sweep_batch_size: int = Field(
        default=500,
        ge=1,
        le=10_000,
        description="Maximum reminders examined per sweep",
    )

    # ──────────────────────────────────────────────────────────────
    # In-process scheduler
    # ──────────────────────────────────────────────────────────────

    scheduler_enabled: bool = Field(
        default=False,
        description="Run the sweep periodically inside the API process (APScheduler)",
    )

    sweep_interval_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Seconds between scheduled sweeps; keep below sweep_horizon_seconds",
    )

    stale_processing_after_seconds: int | None = Field(
        default=None,
        ge=1,
        description="Mark reminders stuck in 'processing' this long as failed before each sweep. Unset disables.",
    )

    # ──────────────────────────────────────────────────────────────
    # Delivery
    # ──────────────────────────────────────────────────────────────

    notifier_backend: NotifierBackend = Field(
        default="console",
        description="Notifier used for delivery: console (log only) or disabled",
    )

    default_intervals: list[str] = Field(
        default_factory=lambda: ["P3M", "P1M", "P3W", "P2W", "P1W", "P3D", "P1D"],
        description="Interval keys enabled for new users",
    )

    @field_validator(
        "sweep_horizon_seconds",
        "sweep_batch_size",
        "sweep_interval_seconds",
        "stale_processing_after_seconds",
        mode="before",
    )
    @classmethod
    def _normalize_numeric(cls, value: Any) -> Any:
        """Allow numeric env vars with inline comments."""
        return sanitize_inline_numeric(value)

    @property
    def is_sweep_secret_configured(self) -> bool:
        """Whether a non-empty sweep secret is set."""
        return self.sweep_secret is not None and bool(self.sweep_secret.get_secret_value())

    model_config = SettingsConfigDict(
        env_prefix="REMINDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
