import asyncio
import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from messmate.core.config import settings
from messmate.core.exceptions import DependencyFailureError, NotFoundError
from messmate.models.notification import Notification
from messmate.repositories.identity_repo import IdentityRepository
from messmate.repositories.notification_repo import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Persists notifications and serves a recipient's inbox."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.repo = NotificationRepository(db)
        self.identities = IdentityRepository(db)

    async def create_notification(
        self,
        recipient_email: str,
        sender_email: Optional[str],
        title: str,
        message: str,
        notification_type: str,
        related_entity_id: Optional[str] = None
    ) -> Notification:
        notification = Notification(
            recipient_email=recipient_email,
            sender_email=sender_email,
            sender_name=await self._sender_name(sender_email),
            title=title,
            message=message,
            notification_type=notification_type,
            related_entity_id=related_entity_id
        )
        return await self.repo.insert(notification)

    async def list_for_user(self, user_email: str) -> List[Notification]:
        return await self.repo.list_for_recipient(user_email)

    async def list_unread_for_user(self, user_email: str) -> List[Notification]:
        return await self.repo.list_for_recipient(user_email, unread_only=True)

    async def count_unread(self, user_email: str) -> int:
        return await self.repo.count_unread(user_email)

    async def mark_as_read(self, notification_id: str, user_email: str) -> Notification:
        notification = await self.repo.mark_read(notification_id, user_email)
        if notification is None:
            raise NotFoundError("Notification not found")
        return notification

    async def mark_all_as_read(self, user_email: str) -> int:
        return await self.repo.mark_all_read(user_email)

    async def delete_notification(self, notification_id: str, user_email: str) -> None:
        if not await self.repo.delete(notification_id, user_email):
            raise NotFoundError("Notification not found")

    async def _sender_name(self, sender_email: Optional[str]) -> Optional[str]:
        if sender_email is None:
            return None
        if sender_email == settings.SYSTEM_SENDER_EMAIL:
            return settings.SYSTEM_SENDER_NAME
        sender = await self.identities.get_user_by_email(sender_email)
        return sender.name if sender else None


class NotificationDispatcher:
    """
    Fire-and-forget hook used by booking transitions.

    Each call to the sink is bounded by a timeout. Any failure is logged
    and reported as False; it never propagates to the caller.
    """

    def __init__(self, sink: NotificationService, timeout_seconds: Optional[float] = None):
        self.sink = sink
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.NOTIFICATION_TIMEOUT_SECONDS
        )

    async def notify(
        self,
        recipient_email: str,
        sender_email: Optional[str],
        title: str,
        message: str,
        notification_type: str,
        related_entity_id: Optional[str] = None
    ) -> bool:
        """Returns True when the sink accepted the notification."""
        try:
            await self._send(
                recipient_email, sender_email, title, message, notification_type, related_entity_id
            )
        except DependencyFailureError as exc:
            logger.warning("Error sending notification: %s", exc.message)
            return False
        return True

    async def _send(
        self,
        recipient_email: str,
        sender_email: Optional[str],
        title: str,
        message: str,
        notification_type: str,
        related_entity_id: Optional[str]
    ) -> None:
        try:
            await asyncio.wait_for(
                self.sink.create_notification(
                    recipient_email,
                    sender_email,
                    title,
                    message,
                    notification_type,
                    related_entity_id
                ),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise DependencyFailureError(
                f"{notification_type} to {recipient_email} timed out after {self.timeout_seconds}s"
            ) from exc
        except Exception as exc:
            raise DependencyFailureError(
                f"{notification_type} to {recipient_email} failed: {exc}"
            ) from exc
