"""
Desktop notification permission, asked at most once per session.

State machine::

    UNSUPPORTED                      (terminal)
    DEFAULT --request--> GRANTED     (terminal)
            \\-request--> DENIED      (terminal)

Any answer other than GRANTED, including a failed request, resolves to DENIED.
"""

import asyncio
from collections.abc import Callable
from typing import Protocol

import structlog

from reminder_alerts.domain.models import PermissionState

logger = structlog.get_logger(__name__)


class NotificationHandle(Protocol):
    def close(self) -> None: ...


class NotificationHost(Protocol):
    """
    Protocol for the host's desktop notification facility.

    ``show`` may block briefly; callers run it off the event loop.
    """

    def permission(self) -> PermissionState: ...

    async def request_permission(self) -> PermissionState: ...

    def show(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        timeout_seconds: float,
        on_click: Callable[[], None],
    ) -> NotificationHandle: ...


class NotificationPermission:
    """Tracks permission state and guards the single permission request."""

    def __init__(self, host: NotificationHost) -> None:
        self.host = host
        self.logger = logger.bind(component="notification_permission")
        self._request_task: asyncio.Task[PermissionState] | None = None
        try:
            self._state = host.permission()
        except Exception as e:
            self.logger.warning("permission_query_failed", error=str(e))
            self._state = PermissionState.UNSUPPORTED

    @property
    def state(self) -> PermissionState:
        return self._state

    @property
    def requested(self) -> bool:
        return self._request_task is not None

    def request_once(self, delay_seconds: float = 0.0) -> asyncio.Task[PermissionState] | None:
        """
        Start the permission request if it has not been started this session.

        Returns the shared request task, or None when the state is already
        resolved and there is nothing to ask.
        """
        if self._request_task is not None:
            return self._request_task
        if self._state is not PermissionState.DEFAULT:
            return None

        self._request_task = asyncio.get_running_loop().create_task(
            self._request(delay_seconds), name="notification-permission-request"
        )
        return self._request_task

    async def _request(self, delay_seconds: float) -> PermissionState:
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

        try:
            answer = await self.host.request_permission()
        except Exception as e:
            self.logger.warning("permission_request_failed", error=str(e))
            answer = PermissionState.DENIED

        self._state = (
            PermissionState.GRANTED if answer is PermissionState.GRANTED else PermissionState.DENIED
        )
        if self._state is PermissionState.GRANTED:
            self.logger.info("notifications_enabled")
        else:
            self.logger.info("notifications_disabled")
        return self._state

    async def resolve(self) -> PermissionState:
        """Current state, waiting on the one-time request if it is still open."""
        task = self.request_once()
        if task is None:
            return self._state
        # Shield so one cancelled waiter does not cancel the shared request
        return await asyncio.shield(task)
