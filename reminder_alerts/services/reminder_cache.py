"""
In-memory snapshot of the backend's reminders.

The snapshot is replaced wholesale on every successful refresh. A failed refresh
leaves the last good snapshot in place so the scheduler keeps working on it.
"""

import asyncio
from datetime import UTC, datetime

import structlog

from reminder_alerts.domain.models import Reminder, ReminderId
from reminder_alerts.services.backend import ReminderBackend
from reminder_alerts.services.result import Result

logger = structlog.get_logger(__name__)


class ReminderCache:
    """Read-mostly copy of the reminder set, keyed by reminder id."""

    def __init__(self, backend: ReminderBackend) -> None:
        self.backend = backend
        self.logger = logger.bind(component="reminder_cache")
        self._reminders: dict[ReminderId, Reminder] = {}
        self._pending_refresh: asyncio.Task[Result[list[Reminder], Exception]] | None = None
        self.last_refreshed_at: datetime | None = None

    async def refresh(self) -> Result[list[Reminder], Exception]:
        """Replace the snapshot with the backend's current reminders."""
        try:
            result = await self.backend.list_reminders()
        except Exception as e:
            self.logger.exception("reminder_refresh_crashed", error=str(e))
            result = Result.err(e)

        if result.is_err():
            self.logger.warning(
                "reminder_refresh_failed",
                error=str(result.unwrap_err()),
                kept_reminders=len(self._reminders),
            )
            return result

        reminders = result.unwrap()
        self._reminders = {reminder.id: reminder for reminder in reminders}
        self.last_refreshed_at = datetime.now(UTC)
        self.logger.info("reminders_loaded", count=len(reminders))
        return result

    def submit_refresh(self) -> asyncio.Task[Result[list[Reminder], Exception]]:
        """Start a background refresh unless one is already in flight."""
        if self._pending_refresh is None or self._pending_refresh.done():
            self._pending_refresh = asyncio.get_running_loop().create_task(
                self.refresh(), name="reminder-cache-refresh"
            )
        return self._pending_refresh

    def snapshot(self) -> list[Reminder]:
        return list(self._reminders.values())

    def get(self, reminder_id: ReminderId) -> Reminder | None:
        return self._reminders.get(reminder_id)

    def mark_notified_locally(self, reminder_id: ReminderId) -> None:
        """Optimistically flag a reminder as notified without waiting for the server."""
        reminder = self._reminders.get(reminder_id)
        if reminder is not None and not reminder.notified:
            self._reminders[reminder_id] = reminder.model_copy(update={"notified": True})

    def remove(self, reminder_id: ReminderId) -> None:
        self._reminders.pop(reminder_id, None)

    def __len__(self) -> int:
        return len(self._reminders)
