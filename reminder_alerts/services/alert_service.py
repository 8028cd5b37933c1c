"""
Integration service that wires the reminder alert pipeline together.

    backend -> reminder cache -> scheduler tick -> dispatcher (sound, desktop)
                                               -> acknowledgement sender

Hosts (audio, desktop notifications, HTTP) are injected so the whole pipeline
runs against test doubles.
"""

from collections.abc import AsyncIterator, Callable

import structlog

from reminder_alerts.adapters.audio import SounddeviceOutput, SubprocessSamplePlayer
from reminder_alerts.adapters.backend_http import HttpReminderBackend
from reminder_alerts.adapters.desktop import PlyerNotificationHost
from reminder_alerts.config import AppConfig, get_config
from reminder_alerts.domain.models import AlertEvent, Reminder, ReminderId
from reminder_alerts.services.acknowledgement import AcknowledgementSender
from reminder_alerts.services.alert_handlers import ConsoleAlertHandler
from reminder_alerts.services.backend import ReminderBackend
from reminder_alerts.services.clock import Clock
from reminder_alerts.services.dispatcher import AlertDispatcher, AlertHandler
from reminder_alerts.services.permission import NotificationHost, NotificationPermission
from reminder_alerts.services.reminder_cache import ReminderCache
from reminder_alerts.services.result import Result
from reminder_alerts.services.scheduler import NotificationScheduler, SchedulerStatus
from reminder_alerts.services.sound import AlertSoundPlayer, AudioOutput, SamplePlayer

logger = structlog.get_logger(__name__)


class ReminderAlertService:
    """Main service owning one scheduler and its collaborators."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        backend: ReminderBackend | None = None,
        notification_host: NotificationHost | None = None,
        audio_output_factory: Callable[[], AudioOutput] | None = None,
        sample_player: SamplePlayer | None = None,
        handlers: list[AlertHandler] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="reminder_alert_service")

        self.backend = backend or HttpReminderBackend(self.config.backend)
        self.cache = ReminderCache(self.backend)
        self.acknowledgements = AcknowledgementSender(self.backend)

        sound_player = AlertSoundPlayer(
            self.config.sound,
            output_factory=audio_output_factory or SounddeviceOutput,
            sample_player=sample_player or SubprocessSamplePlayer(),
        )
        permission = NotificationPermission(
            notification_host or PlyerNotificationHost(self.config.notifications)
        )
        self.dispatcher = AlertDispatcher(
            sound_player,
            permission,
            self.config.notifications,
            handlers=handlers if handlers is not None else [ConsoleAlertHandler()],
        )

        self.scheduler = NotificationScheduler(
            self.cache,
            self.dispatcher,
            self.acknowledgements,
            self.config.scheduler,
            clock=clock,
        )
        self.logger.info(
            "reminder_alert_service_initialized",
            tick_interval_seconds=self.config.scheduler.tick_interval_seconds,
            permission=permission.state.value,
        )

    async def run(self) -> AsyncIterator[list[AlertEvent]]:
        """Start the scheduler and yield the alerts of every tick until stopped."""
        async with self.scheduler.scheduler_session():
            async for events in self.scheduler.run_continuously():
                yield events

    async def delete_reminder(self, reminder_id: ReminderId) -> Result[None, Exception]:
        return await self.scheduler.delete_reminder(reminder_id)

    async def reminders_changed(self) -> Result[list[Reminder], Exception]:
        return await self.scheduler.reminders_changed()

    def status(self) -> SchedulerStatus:
        return self.scheduler.status()

    async def stop(self) -> None:
        """Stop ticking and let in-flight acknowledgements and notifications finish."""
        self.logger.info("stopping_reminder_alert_service")
        self.scheduler.stop()
        await self.acknowledgements.drain()
        await self.dispatcher.drain()
        if isinstance(self.backend, HttpReminderBackend):
            self.backend.close()
