"""Fire-and-forget notifications for status changes and check-ins."""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, Set

from pydantic import BaseModel, Field

from clubcore.core.settings import Settings

logger = logging.getLogger(__name__)


class NotificationEvent(BaseModel):
    """Something a human may want to hear about."""

    event_type: str  # 'application.approved', 'attendance.checked_in', ...
    entity_type: str
    entity_id: Optional[str] = None
    actor_id: Optional[str] = None
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    def render(self) -> str:
        lines = [f"<b>{self.event_type}</b>", f"{self.entity_type}: {self.entity_id}"]
        for key, value in self.details.items():
            lines.append(f"{key}: {value}")
        return "\n".join(lines)


class Notifier(Protocol):
    async def send(self, event: NotificationEvent) -> None:
        ...


class LoggingNotifier:
    """Default transport: writes the event to the log."""

    async def send(self, event: NotificationEvent) -> None:
        logger.info(f"Notification {event.event_type} for {event.entity_type} {event.entity_id}")


class TelegramNotifier:
    """Delivers events to one Telegram chat."""

    def __init__(self, token: str, chat_id: int):
        self.token = token
        self.chat_id = chat_id

    async def send(self, event: NotificationEvent) -> None:
        from aiogram import Bot

        bot = Bot(token=self.token)
        try:
            await bot.send_message(chat_id=self.chat_id, text=event.render(), parse_mode="HTML")
        finally:
            await bot.session.close()
        logger.info(f"Telegram notification sent to chat {self.chat_id}: {event.event_type}")


class NotificationDispatcher:
    """Schedules deliveries in the background.

    Delivery failures are logged and never reach the caller; the transition
    that produced the event is already committed.
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier or LoggingNotifier()
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, event: NotificationEvent) -> asyncio.Task:
        # create_task copies the current context, so trace ids reach the log
        task = asyncio.create_task(self._deliver(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, event: NotificationEvent) -> None:
        try:
            await self.notifier.send(event)
        except Exception:
            logger.exception(
                f"Notification delivery failed for {event.event_type} "
                f"(correlation_id={event.correlation_id}, causation_id={event.causation_id})"
            )

    async def drain(self) -> None:
        """Wait for every pending delivery. Used on shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)


def build_notifier(settings: Settings) -> Notifier:
    if settings.telegram_enabled:
        logger.info("Telegram notifications enabled")
        return TelegramNotifier(settings.telegram_bot_token, settings.notification_chat_id)
    return LoggingNotifier()
