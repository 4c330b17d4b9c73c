"""
Core app services — **Service Layer**.

Contains the notification inbox operations.  Views delegate all
business logic to the service classes defined here, keeping views thin
and ensuring testability.

Notifications are *created* by the workflow engine through
``core.domain.notifications.NotificationService``; this module only
covers what the recipient does with them afterwards.
"""

from __future__ import annotations

import logging

from django.db.models import QuerySet

from core.domain.exceptions import NotFound
from core.domain.identity import CallerIdentity
from core.domain.result import returns_result

from .models import Notification

logger = logging.getLogger(__name__)


class NotificationInboxService:
    """
    Handles listing, reading and deleting notifications for one caller.

    Every lookup is scoped to ``recipient=caller``: a notification that
    belongs to somebody else is reported as not found.
    """

    def __init__(self, caller: CallerIdentity) -> None:
        self.caller = caller

    def _queryset(self) -> QuerySet:
        return Notification.objects.filter(recipient_id=self.caller.id)

    def _get(self, notification_id: int) -> Notification:
        try:
            return self._queryset().get(pk=notification_id)
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound("Notification not found.")

    @returns_result
    def list_notifications(self, unread_only: bool = False) -> list[Notification]:
        """Return the caller's notifications, most recent first."""
        qs = self._queryset().select_related("case")
        if unread_only:
            qs = qs.filter(is_read=False)
        return list(qs.order_by("-created_at", "-id"))

    def unread_count(self) -> int:
        return self._queryset().filter(is_read=False).count()

    @returns_result
    def mark_as_read(self, notification_id: int) -> Notification:
        """Mark a single notification as read.  Already-read stays read."""
        notification = self._get(notification_id)
        notification.mark_read()
        return notification

    @returns_result
    def mark_all_as_read(self) -> int:
        """Mark every unread notification as read; return how many changed."""
        updated = self._queryset().filter(is_read=False).update(is_read=True)
        logger.info("Marked %d notification(s) read for user=%s", updated, self.caller.id)
        return updated

    @returns_result
    def delete(self, notification_id: int) -> None:
        notification = self._get(notification_id)
        notification.delete()
        logger.info("Deleted notification %s for user=%s", notification_id, self.caller.id)
