"""
Alert dispatch: sound cue, desktop notification and extra alert handlers.

``dispatch`` returns as soon as the sound has been handed to the audio output.
The desktop notification (which may wait on the permission prompt) and async
handlers run as background tasks, so a tick is never held up by them.
"""

import asyncio
import inspect
from collections import deque
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

from reminder_alerts.config import NotificationConfig
from reminder_alerts.domain.models import AlertEvent, PermissionState
from reminder_alerts.services.permission import NotificationHandle, NotificationPermission
from reminder_alerts.services.sound import AlertSoundPlayer

logger = structlog.get_logger(__name__)

AlertHandler = Callable[[AlertEvent], Any]


class AlertDispatcher:
    """Renders alert events on every output channel."""

    def __init__(
        self,
        sound_player: AlertSoundPlayer,
        permission: NotificationPermission,
        config: NotificationConfig,
        handlers: list[AlertHandler] | None = None,
        on_focus: Callable[[AlertEvent], None] | None = None,
        history_size: int = 100,
    ) -> None:
        self.sound_player = sound_player
        self.permission = permission
        self.config = config
        self.handlers: list[AlertHandler] = list(handlers or [])
        self.on_focus = on_focus
        self.alert_history: deque[AlertEvent] = deque(maxlen=history_size)
        self.logger = logger.bind(component="alert_dispatcher")
        self._background: set[asyncio.Task[Any]] = set()

    def prepare(self) -> asyncio.Task[PermissionState] | None:
        """Schedule the one-time permission request shortly after startup."""
        return self.permission.request_once(self.config.permission_request_delay_seconds)

    def add_handler(self, handler: AlertHandler) -> None:
        self.handlers.append(handler)

    def dispatch(self, event: AlertEvent) -> None:
        """Render one alert. Never raises."""
        self.alert_history.append(event)

        try:
            channel = self.sound_player.play(event.sound_tier)
        except Exception as e:
            self.logger.exception("alert_sound_crashed", error=str(e))
            channel = "silent"

        if self.permission.state in (PermissionState.GRANTED, PermissionState.DEFAULT):
            self._submit(self._notify(event), name=f"notify-{event.reminder_id}-{event.kind.value}")

        for handler in self.handlers:
            try:
                outcome = handler(event)
                if inspect.isawaitable(outcome):
                    if not self._submit(self._await_handler(outcome, handler), name="alert-handler"):
                        if inspect.iscoroutine(outcome):
                            outcome.close()
            except Exception as e:
                self.logger.error(
                    "alert_handler_failed", error=str(e), handler=type(handler).__name__
                )

        self.logger.info(
            "alert_dispatched",
            reminder_id=event.reminder_id,
            threshold=event.kind.value,
            sound=channel,
            permission=self.permission.state.value,
        )

    def _submit(self, coro: Coroutine[Any, Any, Any], name: str) -> bool:
        """Run ``coro`` in the background; False when there is no loop to run it on."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            self.logger.warning("alert_background_task_skipped", task=name, reason="no_running_loop")
            return False

        task = loop.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return True

    async def _await_handler(self, outcome: Any, handler: AlertHandler) -> None:
        try:
            await outcome
        except Exception as e:
            self.logger.error("alert_handler_failed", error=str(e), handler=type(handler).__name__)

    async def _notify(self, event: AlertEvent) -> None:
        state = await self.permission.resolve()
        if state is not PermissionState.GRANTED:
            return

        shown: list[NotificationHandle] = []

        def on_click() -> None:
            if self.on_focus is not None:
                self.on_focus(event)
            for handle in shown:
                self._close(handle)

        try:
            handle = await asyncio.to_thread(
                self.permission.host.show,
                event.title,
                event.message,
                tag=self.config.tag,
                timeout_seconds=self.config.auto_close_seconds,
                on_click=on_click,
            )
        except Exception as e:
            self.logger.warning(
                "desktop_notification_failed", reminder_id=event.reminder_id, error=str(e)
            )
            return

        shown.append(handle)
        asyncio.get_running_loop().call_later(self.config.auto_close_seconds, self._close, handle)

    def _close(self, handle: NotificationHandle) -> None:
        try:
            handle.close()
        except Exception as e:
            self.logger.debug("desktop_notification_close_failed", error=str(e))

    async def drain(self) -> None:
        """Wait for outstanding notifications and handlers."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
