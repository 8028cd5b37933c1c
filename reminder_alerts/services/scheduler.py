"""
Reminder notification scheduler.

Once per tick, every cached reminder is checked against each alert threshold,
PreAlert first and DueAlert second:

    PreAlert  fires when now in (due_at - 5min, due_at]
    DueAlert  fires when now in (due_at, due_at + 1min]

Each (reminder, threshold) pair fires at most once for the lifetime of the
scheduler's idempotency tracker. There is no catch-up: a window that passes
entirely between two ticks (e.g. the process was suspended) never fires.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from pydantic import BaseModel

from reminder_alerts.config import SchedulerConfig
from reminder_alerts.domain.models import (
    AlertEvent,
    AlertThreshold,
    IdempotencyKey,
    Reminder,
    ReminderId,
    ReminderState,
    ThresholdKind,
    build_thresholds,
)
from reminder_alerts.services.acknowledgement import AcknowledgementSender
from reminder_alerts.services.backend import ReminderBackend
from reminder_alerts.services.clock import Clock, SystemClock
from reminder_alerts.services.dispatcher import AlertDispatcher
from reminder_alerts.services.idempotency import AlertIdempotencyTracker
from reminder_alerts.services.reminder_cache import ReminderCache
from reminder_alerts.services.result import Result

logger = structlog.get_logger(__name__)


class SchedulerStatus(BaseModel):
    """Point-in-time view of the scheduler for diagnostics."""

    running: bool
    reminders_cached: int
    alerts_fired: int
    ticks: int
    last_tick_at: datetime | None


class NotificationScheduler:
    """
    Polls the reminder cache and fires alerts as thresholds are crossed.

    Design principles:
    - The decision step (``tick``) is synchronous and never awaits the network
    - Acknowledgements and cache refreshes are submitted, not awaited
    - Nothing that goes wrong inside a tick stops the loop
    """

    def __init__(
        self,
        cache: ReminderCache,
        dispatcher: AlertDispatcher,
        acknowledgements: AcknowledgementSender,
        config: SchedulerConfig,
        tracker: AlertIdempotencyTracker | None = None,
        clock: Clock | None = None,
        thresholds: Sequence[AlertThreshold] | None = None,
    ) -> None:
        self.cache = cache
        self.dispatcher = dispatcher
        self.acknowledgements = acknowledgements
        self.config = config
        self.tracker = tracker if tracker is not None else AlertIdempotencyTracker()
        self.clock = clock or SystemClock()
        self.thresholds: tuple[AlertThreshold, ...] = tuple(
            thresholds
            or build_thresholds(config.pre_alert_minutes, config.due_alert_grace_minutes)
        )
        self.logger = logger.bind(component="notification_scheduler")
        self._is_running = False
        self._tick_count = 0
        self._last_tick_at: datetime | None = None
        self._last_refresh_at: float | None = None

    @property
    def backend(self) -> ReminderBackend:
        return self.cache.backend

    # ── Decision step ─────────────────────────────────────────────────────────

    def tick(self, now: datetime | None = None) -> list[AlertEvent]:
        """Fire every alert whose window contains ``now`` and has not fired yet."""
        now = now or self.clock.now()
        fired: list[AlertEvent] = []

        for reminder in self.cache.snapshot():
            for threshold in self.thresholds:
                if not threshold.contains(reminder.due_at, now):
                    continue

                key = IdempotencyKey(reminder.id, threshold.kind)
                if self.tracker.has_fired(key):
                    continue

                # Recorded before any side effect so a failing channel cannot cause a replay
                self.tracker.mark_fired(key)
                event = AlertEvent.from_threshold(reminder, threshold, now)
                self.dispatcher.dispatch(event)
                self.acknowledgements.submit(reminder.id)
                self.cache.mark_notified_locally(reminder.id)
                fired.append(event)

                self.logger.info(
                    "alert_fired",
                    reminder_id=reminder.id,
                    threshold=threshold.kind.value,
                    due_at=reminder.due_at.isoformat(),
                )

        self._tick_count += 1
        self._last_tick_at = now
        return fired

    def state_of(self, reminder: Reminder, now: datetime | None = None) -> ReminderState:
        """Where ``reminder`` stands in PENDING -> PRE_ALERTED -> FIRED -> EXPIRED."""
        now = now or self.clock.now()
        last_window_end = max(t.window_for(reminder.due_at)[1] for t in self.thresholds)
        if now > last_window_end:
            return ReminderState.EXPIRED
        if self.tracker.has_fired(IdempotencyKey(reminder.id, ThresholdKind.DUE_ALERT)):
            return ReminderState.FIRED
        if self.tracker.has_fired(IdempotencyKey(reminder.id, ThresholdKind.PRE_ALERT)):
            return ReminderState.PRE_ALERTED
        return ReminderState.PENDING

    # ── Reminder mutations made elsewhere ────────────────────────────────────

    async def delete_reminder(self, reminder_id: ReminderId) -> Result[None, Exception]:
        """Delete a reminder remotely and forget every alert recorded for it."""
        result = await self.backend.delete_reminder(reminder_id)
        if result.is_err():
            self.logger.warning(
                "reminder_delete_failed",
                reminder_id=reminder_id,
                error=str(result.unwrap_err()),
            )
            return result

        self.tracker.clear(reminder_id)
        self.cache.remove(reminder_id)
        await self.cache.refresh()
        return result

    async def reminders_changed(self) -> Result[list[Reminder], Exception]:
        """Reload the cache after a reminder was created or edited."""
        return await self.cache.refresh()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    @asynccontextmanager
    async def scheduler_session(self) -> AsyncIterator["NotificationScheduler"]:
        """
        Start up, then guarantee the running flag is cleared on the way out.

        Startup probes the backend, loads reminders, runs one immediate tick and
        schedules the deferred notification permission request.
        """
        self.logger.info("scheduler_session_started")
        self._is_running = True

        try:
            health = await self.backend.check_health()
            if health.is_err():
                self.logger.warning("backend_unreachable_offline_mode")

            await self.cache.refresh()
            self._last_refresh_at = time.monotonic()
            self.dispatcher.prepare()
            self._safe_tick()
            yield self
        finally:
            self._is_running = False
            self.logger.info("scheduler_session_ended")

    def _safe_tick(self) -> list[AlertEvent]:
        try:
            return self.tick()
        except Exception as e:
            self.logger.exception("scheduler_tick_failed", error=str(e))
            return []

    def _maybe_refresh(self) -> None:
        interval = self.config.cache_refresh_interval_seconds
        if interval is None:
            return
        now = time.monotonic()
        if self._last_refresh_at is None or now - self._last_refresh_at >= interval:
            self._last_refresh_at = now
            self.cache.submit_refresh()

    async def run_continuously(self) -> AsyncIterator[list[AlertEvent]]:
        """
        Tick on a fixed interval, yielding each tick's alerts.

        Ticks never overlap: the next sleep starts only after the tick returns.
        """
        self.logger.info(
            "scheduler_loop_started", interval_seconds=self.config.tick_interval_seconds
        )
        self._is_running = True

        while self._is_running:
            await asyncio.sleep(self.config.tick_interval_seconds)
            if not self._is_running:
                break

            tick_start = time.perf_counter()
            self._maybe_refresh()
            events = self._safe_tick()

            elapsed = time.perf_counter() - tick_start
            if elapsed > self.config.tick_interval_seconds:
                self.logger.warning(
                    "scheduler_tick_slower_than_interval",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=self.config.tick_interval_seconds,
                )
            yield events

        self.logger.info("scheduler_loop_stopped")

    def stop(self) -> None:
        self._is_running = False

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            running=self._is_running,
            reminders_cached=len(self.cache),
            alerts_fired=len(self.tracker),
            ticks=self._tick_count,
            last_tick_at=self._last_tick_at,
        )
