"""
End-to-end tests for the wired alert service, using host doubles only at the edges.
"""

import io
from contextlib import aclosing
from datetime import timedelta

import pytest
from conftest import (
    BASE_TIME,
    FakeBackend,
    FakeNotificationHost,
    FixedClock,
    RecordingAudioOutput,
    RecordingSamplePlayer,
    make_reminder,
)
from rich.console import Console

from reminder_alerts.config import AppConfig, NotificationConfig, SchedulerConfig
from reminder_alerts.domain.models import DEFAULT_THRESHOLDS, AlertEvent, ThresholdKind
from reminder_alerts.services.alert_handlers import ConsoleAlertHandler
from reminder_alerts.services.alert_service import ReminderAlertService


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        scheduler=SchedulerConfig(tick_interval_seconds=0.01),
        notifications=NotificationConfig(permission_request_delay_seconds=0.0),
    )


@pytest.fixture
def service(
    app_config: AppConfig,
    backend: FakeBackend,
    notification_host: FakeNotificationHost,
    audio_output: RecordingAudioOutput,
    sample_player: RecordingSamplePlayer,
    clock: FixedClock,
) -> ReminderAlertService:
    return ReminderAlertService(
        app_config,
        backend=backend,
        notification_host=notification_host,
        audio_output_factory=lambda: audio_output,
        sample_player=sample_player,
        handlers=[],
        clock=clock,
    )


class TestReminderAlertService:
    @pytest.mark.asyncio
    async def test_full_reminder_lifecycle(
        self,
        service: ReminderAlertService,
        backend: FakeBackend,
        notification_host: FakeNotificationHost,
        audio_output: RecordingAudioOutput,
        clock: FixedClock,
    ) -> None:
        # Due at +5m: the startup tick is just outside the pre-alert window
        backend.reminders = [make_reminder(1)]
        fired: list[AlertEvent] = []

        async for events in service.run():
            fired.extend(events)
            clock.advance(minutes=1, seconds=30)
            if clock.now() > BASE_TIME + timedelta(minutes=6):
                service.scheduler.stop()
        await service.stop()

        assert [e.kind for e in fired] == [ThresholdKind.PRE_ALERT, ThresholdKind.DUE_ALERT]
        assert backend.notified == [1, 1]
        assert len(audio_output.played) == 2
        assert [n["body"] for n in notification_host.shown] == [
            "Reminder in 5 minutes: Take blood pressure pills",
            "It's time: Take blood pressure pills!",
        ]
        assert service.status().running is False

    @pytest.mark.asyncio
    async def test_startup_tick_alerts_immediately(
        self, service: ReminderAlertService, backend: FakeBackend
    ) -> None:
        backend.reminders = [make_reminder(4, due_at=BASE_TIME + timedelta(minutes=1))]

        async with aclosing(service.run()) as ticks:
            async for _ in ticks:
                break

        assert service.status().alerts_fired == 1
        await service.stop()
        assert backend.notified == [4]

    @pytest.mark.asyncio
    async def test_offline_backend_does_not_crash(
        self, service: ReminderAlertService, backend: FakeBackend
    ) -> None:
        backend.healthy = False
        backend.fail_list = True
        ticks = 0

        async for events in service.run():
            assert events == []
            ticks += 1
            if ticks == 3:
                service.scheduler.stop()
        await service.stop()

        assert ticks == 3
        assert service.status().reminders_cached == 0

    @pytest.mark.asyncio
    async def test_delete_and_change_notifications(
        self, service: ReminderAlertService, backend: FakeBackend, clock: FixedClock
    ) -> None:
        backend.reminders = [make_reminder(1, due_at=BASE_TIME + timedelta(minutes=4))]
        await service.reminders_changed()

        result = await service.delete_reminder(1)

        assert result.is_ok()
        assert service.scheduler.tick(clock.now()) == []
        assert service.status().reminders_cached == 0

    @pytest.mark.asyncio
    async def test_handlers_receive_alerts(
        self, app_config: AppConfig, backend: FakeBackend, clock: FixedClock
    ) -> None:
        received: list[AlertEvent] = []
        service = ReminderAlertService(
            app_config,
            backend=backend,
            notification_host=FakeNotificationHost(),
            audio_output_factory=RecordingAudioOutput,
            sample_player=RecordingSamplePlayer(),
            handlers=[received.append],
            clock=clock,
        )
        backend.reminders = [make_reminder(2, due_at=BASE_TIME + timedelta(minutes=2))]

        await service.reminders_changed()
        service.scheduler.tick()
        await service.stop()

        assert [e.reminder_id for e in received] == [2]


class TestConsoleAlertHandler:
    def _render(self, kind: ThresholdKind, minutes_before_due: float) -> str:
        output = io.StringIO()
        handler = ConsoleAlertHandler(Console(file=output, width=80, color_system=None))
        threshold = next(t for t in DEFAULT_THRESHOLDS if t.kind is kind)
        reminder = make_reminder(1, title="Blood sugar check")
        now = reminder.due_at - timedelta(minutes=minutes_before_due)

        handler(AlertEvent.from_threshold(reminder, threshold, now))
        return output.getvalue()

    def test_pre_alert_panel(self) -> None:
        text = self._render(ThresholdKind.PRE_ALERT, minutes_before_due=4)

        assert "Reminder in 4 minutes" in text
        assert '"Blood sugar check"' in text

    def test_due_alert_panel(self) -> None:
        text = self._render(ThresholdKind.DUE_ALERT, minutes_before_due=-0.5)

        assert "Time for" in text
        assert '"Blood sugar check"' in text
