"""
Seen-once record of fired alerts.

The tracker lives as long as the scheduler that owns it. It is not persisted, so
after a restart an alert whose window is still open fires once more.
"""

import structlog

from reminder_alerts.domain.models import IdempotencyKey, ReminderId, ThresholdKind

logger = structlog.get_logger(__name__)


class AlertIdempotencyTracker:
    """In-memory set of fired (reminder, threshold) keys."""

    def __init__(self) -> None:
        self._fired: set[IdempotencyKey] = set()
        self.logger = logger.bind(component="idempotency_tracker")

    def has_fired(self, key: IdempotencyKey) -> bool:
        return key in self._fired

    def mark_fired(self, key: IdempotencyKey) -> None:
        self._fired.add(key)

    def clear(self, reminder_id: ReminderId) -> None:
        """Forget every threshold fired for a deleted reminder."""
        removed = 0
        for kind in ThresholdKind:
            key = IdempotencyKey(reminder_id, kind)
            if key in self._fired:
                self._fired.discard(key)
                removed += 1
        self.logger.debug("alert_keys_cleared", reminder_id=reminder_id, removed=removed)

    def __contains__(self, key: object) -> bool:
        return key in self._fired

    def __len__(self) -> int:
        return len(self._fired)
