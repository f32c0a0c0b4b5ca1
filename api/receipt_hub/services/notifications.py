# receipt_hub/services/notifications.py
"""
Notifications - stored inbox rows plus best-effort device push.

The push transport is an injected collaborator. It is initialized once at
application startup (``init()``); services only ever call ``send()`` and
never initialize it themselves.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from receipt_hub.services.repositories import NotificationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushResult:
    success: bool
    error: Optional[str] = None


class PushClient(Protocol):
    @property
    def ready(self) -> bool: ...

    async def init(self) -> None: ...

    async def send(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, str]] = None,
    ) -> PushResult: ...


class LoggingPushClient:
    """Push client that only writes the message to the log."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    async def init(self) -> None:
        self._ready = True
        logger.info("Push client initialized (enabled=%s)", self.enabled)

    async def send(self, tokens, title, body, data=None) -> PushResult:
        if not self.enabled:
            return PushResult(False, "push disabled")
        logger.info("Push to %d device(s): %s - %s", len(tokens), title, body)
        return PushResult(True)


@dataclass(frozen=True)
class PendingPush:
    """A stored notification waiting to be pushed once its transaction commits."""
    notification_id: int
    user_id: int
    tokens: Tuple[str, ...]
    title: str
    body: str
    data: Optional[Dict[str, str]] = None


class NotificationService:
    """
    Stores a notification for a user and forwards it to their devices.

    ``store()`` runs inside the caller's transaction; ``deliver()`` is called
    after that transaction commits, so a rolled-back change never reaches a
    device.
    """

    def __init__(self, db: AsyncSession, push: Optional[PushClient] = None):
        self.db = db
        self.push = push
        self.repo = NotificationRepository(db)

    async def store(
        self,
        user_id: int,
        title: str,
        body: str,
        data: Optional[Dict[str, str]] = None,
    ) -> PendingPush:
        notification = await self.repo.create(user_id, title, body, data)
        tokens = await self.repo.device_tokens(user_id)
        return PendingPush(notification.id, user_id, tuple(tokens), title, body, data)

    async def deliver(self, pending: PendingPush) -> PushResult:
        if self.push is None or not self.push.ready:
            logger.debug("Push client not ready; notification %s stored only", pending.notification_id)
            return PushResult(False, "push client not ready")
        if not pending.tokens:
            return PushResult(False, "no device tokens")

        try:
            result = await self.push.send(list(pending.tokens), pending.title, pending.body, pending.data)
        except Exception as e:
            logger.warning("Push delivery to user %s failed: %s", pending.user_id, e)
            return PushResult(False, str(e))
        if not result.success:
            logger.warning("Push delivery to user %s rejected: %s", pending.user_id, result.error)
        return result
