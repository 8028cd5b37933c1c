"""Extra alert outputs beyond sound and desktop notifications."""

from rich.console import Console
from rich.panel import Panel

from reminder_alerts.domain.models import AlertEvent, ThresholdKind


class ConsoleAlertHandler:
    """In-terminal toast for each alert."""

    STYLES = {
        ThresholdKind.PRE_ALERT: ("⏰", "Reminder in {minutes} minutes", "cyan"),
        ThresholdKind.DUE_ALERT: ("🔔", "Time for", "red"),
    }

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def __call__(self, alert: AlertEvent) -> None:
        emoji, heading, colour = self.STYLES[alert.kind]
        minutes = max(0, round((alert.due_at - alert.fired_at).total_seconds() / 60))
        heading = heading.format(minutes=minutes)
        self.console.print(
            Panel(
                f'"{alert.title}"\nDue {alert.due_at.astimezone():%H:%M}',
                title=f"{emoji} {heading}",
                border_style=colour,
                expand=False,
            )
        )
