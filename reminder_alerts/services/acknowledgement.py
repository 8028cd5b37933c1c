"""
Best-effort "notified" acknowledgements to the backend.

Submitting an acknowledgement never waits on the network. Failures are logged
and dropped: the local idempotency record is authoritative for the session.
"""

import asyncio

import structlog

from reminder_alerts.domain.models import ReminderId
from reminder_alerts.services.backend import ReminderBackend

logger = structlog.get_logger(__name__)


class AcknowledgementSender:
    """Fire-and-forget sender of ``PUT /reminders/{id}/notify``."""

    def __init__(self, backend: ReminderBackend) -> None:
        self.backend = backend
        self.logger = logger.bind(component="acknowledgement_sender")
        self._in_flight: set[asyncio.Task[None]] = set()

    def submit(self, reminder_id: ReminderId) -> asyncio.Task[None]:
        """Schedule the acknowledgement and return immediately."""
        task = asyncio.get_running_loop().create_task(
            self._send(reminder_id), name=f"acknowledge-{reminder_id}"
        )
        # Keep a strong reference until the task finishes
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _send(self, reminder_id: ReminderId) -> None:
        try:
            result = await self.backend.mark_notified(reminder_id)
        except Exception as e:
            self.logger.exception("acknowledgement_crashed", reminder_id=reminder_id, error=str(e))
            return

        if result.is_err():
            self.logger.error(
                "acknowledgement_failed",
                reminder_id=reminder_id,
                error=str(result.unwrap_err()),
            )
        else:
            self.logger.debug("acknowledgement_sent", reminder_id=reminder_id)

    @property
    def pending(self) -> int:
        return len(self._in_flight)

    async def drain(self) -> None:
        """Wait for every acknowledgement submitted so far."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
