"""
Domain models for reminder alerting.

These models represent the core scheduling concepts and are framework-agnostic.
They use Pydantic for validation of data coming from the reminder backend.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ReminderId = int | str


class ThresholdKind(str, Enum):
    """Named alert trigger points relative to a reminder's due time."""

    PRE_ALERT = "5min"
    DUE_ALERT = "now"


class SoundTier(str, Enum):
    """Audible cue tiers, by urgency."""

    STANDARD = "standard"
    URGENT = "urgent"


class PermissionState(str, Enum):
    """Desktop notification capability for the current session."""

    UNSUPPORTED = "unsupported"
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class ReminderState(str, Enum):
    """Observable per-reminder progress through the alert thresholds."""

    PENDING = "pending"
    PRE_ALERTED = "pre_alerted"
    FIRED = "fired"
    EXPIRED = "expired"


class Reminder(BaseModel):
    """Cached read-only copy of a reminder record owned by the backend."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: ReminderId
    title: str
    due_at: datetime = Field(alias="date_time", description="Moment the reminder is due")
    notes: str | None = None
    notified: bool = False

    @field_validator("due_at")
    @classmethod
    def normalize_to_utc(cls, value: datetime) -> datetime:
        # Naive timestamps come from datetime-local form inputs
        if value.tzinfo is None:
            value = value.astimezone()
        return value.astimezone(UTC)


class IdempotencyKey(NamedTuple):
    """One (reminder, threshold) alert obligation."""

    reminder_id: ReminderId
    kind: ThresholdKind


@dataclass(frozen=True)
class AlertThreshold:
    """
    A half-open alert window relative to a reminder's due time.

    The window is ``(due_at + opens_after, due_at + closes_at]``.
    """

    kind: ThresholdKind
    opens_after: timedelta
    closes_at: timedelta
    sound_tier: SoundTier
    message_template: str

    def window_for(self, due_at: datetime) -> tuple[datetime, datetime]:
        return due_at + self.opens_after, due_at + self.closes_at

    def contains(self, due_at: datetime, now: datetime) -> bool:
        start, end = self.window_for(due_at)
        return start < now <= end

    def message_for(self, reminder: Reminder) -> str:
        return self.message_template.format(title=reminder.title)


def build_thresholds(
    pre_alert_minutes: float = 5.0, due_alert_grace_minutes: float = 1.0
) -> tuple[AlertThreshold, AlertThreshold]:
    """Build the thresholds in evaluation order: PreAlert, then DueAlert."""
    pre_alert = AlertThreshold(
        kind=ThresholdKind.PRE_ALERT,
        opens_after=-timedelta(minutes=pre_alert_minutes),
        closes_at=timedelta(0),
        sound_tier=SoundTier.STANDARD,
        message_template=f"Reminder in {pre_alert_minutes:g} minutes: {{title}}",
    )
    due_alert = AlertThreshold(
        kind=ThresholdKind.DUE_ALERT,
        opens_after=timedelta(0),
        closes_at=timedelta(minutes=due_alert_grace_minutes),
        sound_tier=SoundTier.URGENT,
        message_template="It's time: {title}!",
    )
    return pre_alert, due_alert


DEFAULT_THRESHOLDS = build_thresholds()


@dataclass
class AlertEvent:
    """An alert the scheduler decided to fire."""

    reminder_id: ReminderId
    title: str
    kind: ThresholdKind
    message: str
    sound_tier: SoundTier
    due_at: datetime
    fired_at: datetime

    @property
    def key(self) -> IdempotencyKey:
        return IdempotencyKey(self.reminder_id, self.kind)

    @classmethod
    def from_threshold(
        cls, reminder: Reminder, threshold: AlertThreshold, now: datetime
    ) -> "AlertEvent":
        return cls(
            reminder_id=reminder.id,
            title=reminder.title,
            kind=threshold.kind,
            message=threshold.message_for(reminder),
            sound_tier=threshold.sound_tier,
            due_at=reminder.due_at,
            fired_at=now,
        )
