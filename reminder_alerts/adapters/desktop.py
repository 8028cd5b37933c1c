"""
Desktop notifications through plyer.

plyer has no permission prompt of its own; the user's consent is the
``notifications.enabled`` setting, read when the one-time request is made.
plyer notifications close themselves after their timeout and expose no click
events, so the returned handle is inert.
"""

import platform
from collections.abc import Callable

import structlog
from plyer import notification

from reminder_alerts.config import NotificationConfig
from reminder_alerts.domain.models import PermissionState

logger = structlog.get_logger(__name__)

SUPPORTED_PLATFORMS = {"Linux", "Darwin", "Windows"}


class PlyerNotification:
    def close(self) -> None:
        pass


class PlyerNotificationHost:
    def __init__(self, config: NotificationConfig) -> None:
        self.config = config
        self.logger = logger.bind(component="desktop_notifications")

    def permission(self) -> PermissionState:
        if platform.system() not in SUPPORTED_PLATFORMS:
            return PermissionState.UNSUPPORTED
        return PermissionState.DEFAULT

    async def request_permission(self) -> PermissionState:
        return PermissionState.GRANTED if self.config.enabled else PermissionState.DENIED

    def show(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        timeout_seconds: float,
        on_click: Callable[[], None],
    ) -> PlyerNotification:
        notification.notify(
            title=title,
            message=body,
            app_name=self.config.app_name,
            timeout=int(timeout_seconds),
        )
        self.logger.debug("desktop_notification_shown", title=title, tag=tag)
        return PlyerNotification()
