import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class ContributionEvent:
    """Событие проверки вклада для уведомления участника"""
    contribution_id: uuid.UUID
    document_id: uuid.UUID
    document_title: str
    contributor_id: uuid.UUID
    reviewer_id: uuid.UUID
    status: str
    rejection_reason: Optional[str] = None
    occurred_at: datetime = field(default_factory=datetime.utcnow)


class NotificationSender(Protocol):
    async def send(self, event: ContributionEvent) -> None:
        ...


class LoggingNotificationSender:
    """Отправитель по умолчанию: событие только пишется в лог"""

    async def send(self, event: ContributionEvent) -> None:
        logger.info(
            f"Contribution {event.contribution_id} on '{event.document_title}' "
            f"{event.status.lower()} by {event.reviewer_id}, notifying {event.contributor_id}"
        )


async def dispatch(sender: Optional[NotificationSender], event: ContributionEvent) -> None:
    """Отправка уведомления без ожидания результата: ошибки логируются, повторов нет"""
    if sender is None:
        return
    try:
        await sender.send(event)
    except Exception as e:
        logger.error(f"Failed to send notification for contribution {event.contribution_id}: {e}")
