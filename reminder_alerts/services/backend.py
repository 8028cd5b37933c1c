"""
Contract with the reminder REST backend.

The backend owns reminder records; this package only reads them, flags them as
notified and deletes them on the user's behalf.
"""

from typing import Any, Protocol

from reminder_alerts.domain.models import Reminder, ReminderId
from reminder_alerts.services.result import Result


class ReminderBackend(Protocol):
    """
    Protocol defining how reminders are read and updated remotely.

    Every call returns a Result; transport failures are expected and must never
    escape as exceptions.
    """

    async def check_health(self) -> Result[dict[str, Any], Exception]: ...

    async def list_reminders(self) -> Result[list[Reminder], Exception]: ...

    async def mark_notified(self, reminder_id: ReminderId) -> Result[None, Exception]: ...

    async def delete_reminder(self, reminder_id: ReminderId) -> Result[None, Exception]: ...
