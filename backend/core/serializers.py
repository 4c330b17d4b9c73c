"""
Core app serializers.

**Response-only** serializers for the notification inbox.  They do
**not** accept input data; the only client input (``unread_only``) is a
query parameter read by the view.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for ``Notification`` instances.

    Used by the Notification ViewSet to list and retrieve notifications
    for the authenticated user.
    """

    case_number = serializers.CharField(
        source="case.case_number",
        read_only=True,
        default=None,
        help_text="Human-readable number of the related case (if any).",
    )

    class Meta:
        model = Notification
        fields = [
            "id",
            "category",
            "title",
            "message",
            "is_read",
            "case",
            "case_number",
            "created_at",
        ]
        read_only_fields = fields


class NotificationListResponseSerializer(serializers.Serializer):
    """Envelope returned by ``GET /api/core/notifications/``."""

    notifications = NotificationSerializer(many=True)
    unread_count = serializers.IntegerField(
        help_text="Number of unread notifications for the caller.",
    )


class MarkAllReadResponseSerializer(serializers.Serializer):
    updated = serializers.IntegerField(
        help_text="How many notifications were flipped to read.",
    )
