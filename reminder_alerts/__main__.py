"""
Run the reminder alert scheduler against the configured backend.

Run with: python -m reminder_alerts
"""

import asyncio

import structlog

from reminder_alerts.config import get_config, print_config_summary, validate_config
from reminder_alerts.logging_config import configure_logging
from reminder_alerts.services.alert_service import ReminderAlertService

logger = structlog.get_logger(__name__)


async def main() -> None:
    config = get_config()
    configure_logging(config.logging)
    if config.debug:
        print_config_summary()

    service = ReminderAlertService(config)
    try:
        async for events in service.run():
            if events:
                logger.info("tick_alerts", count=len(events))
    finally:
        await service.stop()


def run() -> None:
    validate_config()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n⏹️  Reminder alerts stopped by user")


if __name__ == "__main__":
    run()
