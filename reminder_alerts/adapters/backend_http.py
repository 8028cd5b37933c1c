"""
HTTP implementation of the reminder backend contract.

Requests are blocking, so each call runs in a worker thread and the event loop
stays free for scheduler ticks.
"""

import asyncio
from typing import Any

import requests
import structlog
from pydantic import TypeAdapter, ValidationError

from reminder_alerts.config import BackendConfig
from reminder_alerts.domain.models import Reminder, ReminderId
from reminder_alerts.services.result import Result

logger = structlog.get_logger(__name__)

_reminder_list = TypeAdapter(list[Reminder])


class BackendError(Exception):
    """The backend answered, but not with what was asked for."""


class HttpReminderBackend:
    """Reminder backend reached over its JSON REST API."""

    def __init__(self, config: BackendConfig, session: requests.Session | None = None) -> None:
        self.base_url = config.api_url.rstrip("/")
        self.timeout = config.request_timeout_seconds
        self.session = session or requests.Session()
        self.logger = logger.bind(component="backend", base_url=self.base_url)

    def _request(self, method: str, path: str) -> requests.Response:
        response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout)
        if not response.ok:
            raise BackendError(f"{method} {path} failed with HTTP {response.status_code}")
        return response

    async def check_health(self) -> Result[dict[str, Any], Exception]:
        try:
            response = await asyncio.to_thread(self._request, "GET", "/health")
            health = response.json()
            self.logger.info("backend_healthy", health=health)
            return Result.ok(health)
        except (requests.RequestException, BackendError, ValueError) as e:
            self.logger.warning("backend_health_check_failed", error=str(e))
            return Result.err(e)

    async def list_reminders(self) -> Result[list[Reminder], Exception]:
        try:
            response = await asyncio.to_thread(self._request, "GET", "/reminders")
            reminders = _reminder_list.validate_python(response.json())
            self.logger.debug("reminders_fetched", count=len(reminders))
            return Result.ok(reminders)
        except ValidationError as e:
            self.logger.error("reminders_payload_invalid", error=str(e))
            return Result.err(e)
        except (requests.RequestException, BackendError, ValueError) as e:
            self.logger.warning("reminders_fetch_failed", error=str(e))
            return Result.err(e)

    async def mark_notified(self, reminder_id: ReminderId) -> Result[None, Exception]:
        try:
            await asyncio.to_thread(self._request, "PUT", f"/reminders/{reminder_id}/notify")
            return Result.ok(None)
        except (requests.RequestException, BackendError) as e:
            return Result.err(e)

    async def delete_reminder(self, reminder_id: ReminderId) -> Result[None, Exception]:
        try:
            await asyncio.to_thread(self._request, "DELETE", f"/reminders/{reminder_id}")
            self.logger.info("reminder_deleted", reminder_id=reminder_id)
            return Result.ok(None)
        except (requests.RequestException, BackendError) as e:
            self.logger.warning("reminder_delete_failed", reminder_id=reminder_id, error=str(e))
            return Result.err(e)

    def close(self) -> None:
        self.session.close()
