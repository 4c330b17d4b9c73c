"""
core.domain.notifications — Synchronous notification creation helper.

Centralises notification creation so every service uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **Same unit of work** — rows are written in the calling transaction,
  alongside the case update that caused them.  Live push is a separate,
  post-commit concern (``core.domain.push``).
* **Supports multiple recipients** — pass a single user / user id or an
  iterable of them.  Duplicates are collapsed, first occurrence wins.
* **Templated text** — ``event_type`` selects a (category, title,
  message) template; ``context`` is interpolated into title and message.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.create(
        actor=caller.id,
        recipients=[case.complainant_id],
        event_type="case_response_received",
        case=case,
        context={"decision": "accepted"},
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.db import models

if TYPE_CHECKING:
    from cases.models import Case
    from core.models import Notification

logger = logging.getLogger(__name__)


class _SafeContext(dict):
    """Leaves unknown ``{placeholders}`` untouched."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


# ── Event-type → (category, title, message) templates ───────────────
_EVENT_TEMPLATES: dict[str, tuple[str, str, str]] = {
    "case_registered": (
        "CASE_STATUS_UPDATE",
        "Case Registered Successfully",
        "Your case #{case_number} has been registered and is {status_label}.",
    ),
    "case_filed_against_you": (
        "CASE_STATUS_UPDATE",
        "New Case Filed Against You",
        "A new case #{case_number} has been filed against you. Please review and respond.",
    ),
    "respondent_linked": (
        "CASE_STATUS_UPDATE",
        "Opposite Party Linked",
        "The opposite party on case #{case_number} is now registered and has been asked to respond.",
    ),
    "case_response_received": (
        "CASE_RESPONSE",
        "Case Response Received",
        "The opposite party has {decision} your case #{case_number}.",
    ),
    "witness_nominated": (
        "WITNESS_NOMINATION",
        "Added as Witness",
        "You have been added as a witness in case #{case_number}.",
    ),
    "panel_created": (
        "PANEL_ASSIGNMENT",
        "Mediation Panel Created",
        "A mediation panel has been created for case #{case_number}.",
    ),
    "panel_assigned": (
        "PANEL_ASSIGNMENT",
        "Assigned to Mediation Panel",
        "You have been assigned to a mediation panel for case #{case_number}.",
    ),
    "case_status_changed": (
        "CASE_STATUS_UPDATE",
        "Case Status Updated",
        "Case #{case_number} status has been updated to {status}.",
    ),
    "case_cancelled": (
        "CASE_STATUS_UPDATE",
        "Case Cancelled",
        "Case #{case_number} has been cancelled.",
    ),
}


def _recipient_id(recipient: Any) -> int:
    if isinstance(recipient, models.Model):
        return recipient.pk
    return int(recipient)


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def render(cls, event_type: str, context: dict[str, Any] | None = None) -> tuple[str, str, str]:
        """Return ``(category, title, message)`` for an event type."""
        category, title, message = _EVENT_TEMPLATES.get(
            event_type,
            ("SYSTEM", event_type.replace("_", " ").title(), f"Event: {event_type}"),
        )
        ctx = _SafeContext(context or {})
        return category, title.format_map(ctx), message.format_map(ctx)

    @classmethod
    def create(
        cls,
        *,
        actor: Any,
        recipients: Any | Iterable[Any],
        event_type: str,
        case: Case | None = None,
        context: dict[str, Any] | None = None,
    ) -> list[Notification]:
        """
        Create one ``Notification`` per distinct recipient.

        Args:
            actor:      The user (or id) who performed the action, or
                        ``None`` for system actions.  Used for logging.
            recipients: A single user / user id or an iterable of them.
            event_type: Key into ``_EVENT_TEMPLATES``.  If unknown the raw
                        event_type is used as title.
            case:       Optional case the notification refers to.
            context:    Template interpolation values.  ``case_number`` is
                        filled from ``case`` when not given.

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import — avoids circular deps

        if isinstance(recipients, (models.Model, int)):
            recipients = [recipients]

        ids: list[int] = []
        for recipient in recipients:
            rid = _recipient_id(recipient)
            if rid not in ids:
                ids.append(rid)

        if not ids:
            logger.debug(
                "NotificationService.create called with no recipients "
                "for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        ctx = dict(context or {})
        if case is not None:
            ctx.setdefault("case_number", case.case_number)
        category, title, message = cls.render(event_type, ctx)

        notifications = [
            Notification.objects.create(
                recipient_id=rid,
                case=case,
                category=category,
                title=title,
                message=message,
            )
            for rid in ids
        ]

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications

    @staticmethod
    def push_events(notifications: Iterable[Notification]) -> list[tuple[int, dict[str, Any]]]:
        """Build one ``(user_id, event)`` push payload per notification."""
        return [
            (
                n.recipient_id,
                {
                    "type": n.category,
                    "notification_id": n.pk,
                    "case_id": n.case_id,
                    "title": n.title,
                    "message": n.message,
                },
            )
            for n in notifications
        ]
