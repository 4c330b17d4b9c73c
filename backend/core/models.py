"""
Core app models.

Provides abstract base models and the per-user notification inbox.
"""

from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class NotificationCategory(models.TextChoices):
    CASE_STATUS_UPDATE = "CASE_STATUS_UPDATE", "Case Status Update"
    CASE_RESPONSE = "CASE_RESPONSE", "Case Response"
    WITNESS_NOMINATION = "WITNESS_NOMINATION", "Witness Nomination"
    PANEL_ASSIGNMENT = "PANEL_ASSIGNMENT", "Panel Assignment"
    SYSTEM = "SYSTEM", "System"


class Notification(TimeStampedModel):
    """
    Inbox item sent to a user about a case they are involved in.

    Created by the workflow engine in the same transaction as the case
    change that caused it.  Only the recipient may mark it read (a one-way
    flag) or delete it.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    case = models.ForeignKey(
        "cases.Case",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
        verbose_name="Case",
    )
    category = models.CharField(
        max_length=30,
        choices=NotificationCategory.choices,
        default=NotificationCategory.CASE_STATUS_UPDATE,
        verbose_name="Category",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    is_read = models.BooleanField(default=False, verbose_name="Read")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
        ]

    def __str__(self):
        return f"[{self.recipient_id}] {self.title}"

    def mark_read(self) -> bool:
        """Set the read flag.  Returns ``True`` if it changed."""
        if self.is_read:
            return False
        self.is_read = True
        self.save(update_fields=["is_read", "updated_at"])
        return True
