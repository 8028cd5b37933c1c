"""
Shared test doubles and fixtures.

Doubles implement the service protocols directly (no mocking library) so tests
exercise real scheduler, cache and dispatcher behaviour.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import numpy as np
import pytest

from reminder_alerts.config import NotificationConfig, SchedulerConfig, SoundConfig
from reminder_alerts.domain.models import AlertEvent, PermissionState, Reminder, ReminderId
from reminder_alerts.services.acknowledgement import AcknowledgementSender
from reminder_alerts.services.dispatcher import AlertDispatcher
from reminder_alerts.services.permission import NotificationPermission
from reminder_alerts.services.reminder_cache import ReminderCache
from reminder_alerts.services.result import Result
from reminder_alerts.services.scheduler import NotificationScheduler
from reminder_alerts.services.sound import AlertSoundPlayer

BASE_TIME = datetime(2026, 10, 16, 9, 0, tzinfo=UTC)


def make_reminder(
    reminder_id: ReminderId = 1,
    due_at: datetime | None = None,
    title: str = "Take blood pressure pills",
    notified: bool = False,
) -> Reminder:
    return Reminder(
        id=reminder_id,
        title=title,
        date_time=due_at or BASE_TIME + timedelta(minutes=5),
        notes=None,
        notified=notified,
    )


class FixedClock:
    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current += timedelta(**delta)
        return self.current


class FakeBackend:
    """In-memory reminder backend with switchable failures."""

    def __init__(self, reminders: list[Reminder] | None = None) -> None:
        self.reminders = list(reminders or [])
        self.healthy = True
        self.fail_list = False
        self.fail_notify = False
        self.fail_delete = False
        self.notify_delay_seconds = 0.0
        self.list_calls = 0
        self.notified: list[ReminderId] = []
        self.deleted: list[ReminderId] = []

    async def check_health(self) -> Result[dict[str, Any], Exception]:
        if not self.healthy:
            return Result.err(ConnectionError("backend down"))
        return Result.ok({"status": "ok"})

    async def list_reminders(self) -> Result[list[Reminder], Exception]:
        self.list_calls += 1
        if self.fail_list:
            return Result.err(ConnectionError("backend down"))
        return Result.ok(list(self.reminders))

    async def mark_notified(self, reminder_id: ReminderId) -> Result[None, Exception]:
        if self.notify_delay_seconds:
            await asyncio.sleep(self.notify_delay_seconds)
        self.notified.append(reminder_id)
        if self.fail_notify:
            return Result.err(ConnectionError("notify failed"))
        return Result.ok(None)

    async def delete_reminder(self, reminder_id: ReminderId) -> Result[None, Exception]:
        if self.fail_delete:
            return Result.err(ConnectionError("delete failed"))
        self.reminders = [r for r in self.reminders if r.id != reminder_id]
        self.deleted.append(reminder_id)
        return Result.ok(None)


class RecordingAudioOutput:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.played: list[tuple[np.ndarray, int]] = []

    def play(self, samples: np.ndarray, sample_rate: int) -> None:
        if self.fail:
            raise RuntimeError("audio device busy")
        self.played.append((samples, sample_rate))


class RecordingSamplePlayer:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    def play_wav(self, data: bytes) -> None:
        self.calls += 1
        if self.fail:
            raise RuntimeError("no audio player")


class FakeHandle:
    def __init__(self, on_click: Callable[[], None]) -> None:
        self.on_click = on_click
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeNotificationHost:
    def __init__(
        self,
        state: PermissionState = PermissionState.GRANTED,
        answer: PermissionState = PermissionState.GRANTED,
        fail_request: bool = False,
        fail_show: bool = False,
    ) -> None:
        self.state = state
        self.answer = answer
        self.fail_request = fail_request
        self.fail_show = fail_show
        self.request_count = 0
        self.shown: list[dict[str, Any]] = []
        self.handles: list[FakeHandle] = []

    def permission(self) -> PermissionState:
        return self.state

    async def request_permission(self) -> PermissionState:
        self.request_count += 1
        await asyncio.sleep(0)
        if self.fail_request:
            raise RuntimeError("prompt blocked")
        return self.answer

    def show(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        timeout_seconds: float,
        on_click: Callable[[], None],
    ) -> FakeHandle:
        if self.fail_show:
            raise RuntimeError("notification daemon gone")
        self.shown.append(
            {"title": title, "body": body, "tag": tag, "timeout_seconds": timeout_seconds}
        )
        handle = FakeHandle(on_click)
        self.handles.append(handle)
        return handle


class RecordingDispatcher:
    """Stands in for AlertDispatcher where only the decision step matters."""

    def __init__(self) -> None:
        self.events: list[AlertEvent] = []

    def dispatch(self, event: AlertEvent) -> None:
        self.events.append(event)

    def prepare(self) -> None:
        return None


class RecordingAcknowledgements:
    def __init__(self) -> None:
        self.submitted: list[ReminderId] = []

    def submit(self, reminder_id: ReminderId) -> None:
        self.submitted.append(reminder_id)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def notification_host() -> FakeNotificationHost:
    return FakeNotificationHost()


@pytest.fixture
def audio_output() -> RecordingAudioOutput:
    return RecordingAudioOutput()


@pytest.fixture
def sample_player() -> RecordingSamplePlayer:
    return RecordingSamplePlayer()


@pytest.fixture
def sound_config() -> SoundConfig:
    return SoundConfig(sample_rate=8000)


@pytest.fixture
def notification_config() -> NotificationConfig:
    return NotificationConfig(permission_request_delay_seconds=0.0, auto_close_seconds=10.0)


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    return SchedulerConfig(tick_interval_seconds=0.01)


@pytest.fixture
def dispatcher(
    audio_output: RecordingAudioOutput,
    sample_player: RecordingSamplePlayer,
    notification_host: FakeNotificationHost,
    sound_config: SoundConfig,
    notification_config: NotificationConfig,
) -> AlertDispatcher:
    sound_player = AlertSoundPlayer(
        sound_config, output_factory=lambda: audio_output, sample_player=sample_player
    )
    return AlertDispatcher(
        sound_player, NotificationPermission(notification_host), notification_config
    )


@pytest.fixture
def make_scheduler(
    backend: FakeBackend,
    dispatcher: AlertDispatcher,
    scheduler_config: SchedulerConfig,
    clock: FixedClock,
) -> Callable[..., Awaitable[NotificationScheduler]]:
    """Build a scheduler whose cache is already loaded with ``reminders``."""

    async def _make(*reminders: Reminder) -> NotificationScheduler:
        backend.reminders = list(reminders)
        cache = ReminderCache(backend)
        await cache.refresh()
        return NotificationScheduler(
            cache,
            dispatcher,
            AcknowledgementSender(backend),
            scheduler_config,
            clock=clock,
        )

    return _make
