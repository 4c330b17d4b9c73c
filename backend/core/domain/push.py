"""
core.domain.push — Best-effort real-time delivery.

The workflow engine talks to live transports only through the narrow
``Notifier`` capability.  Deliveries are queued with
``transaction.on_commit`` so nothing is pushed for a rolled-back
operation, and a failing transport is logged without affecting the
already-committed transition.

Select the implementation with the ``RESOLVEIT_NOTIFIER`` setting::

    RESOLVEIT_NOTIFIER = "core.domain.push.LoggingNotifier"
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Protocol

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def publish(self, user_id: int, event: dict[str, Any]) -> None:
        """Deliver ``event`` to ``user_id``.  No delivery guarantee."""


class NullNotifier:
    """Drops every event."""

    def publish(self, user_id: int, event: dict[str, Any]) -> None:
        return None


class LoggingNotifier:
    """Writes every event to the ``core.domain.push`` logger."""

    def publish(self, user_id: int, event: dict[str, Any]) -> None:
        logger.info("push -> user=%s event=%s", user_id, event)


def get_notifier() -> Notifier:
    """Instantiate the notifier configured in settings."""
    path = getattr(settings, "RESOLVEIT_NOTIFIER", "core.domain.push.LoggingNotifier")
    return import_string(path)()


def deliver(notifier: Notifier, deliveries: Iterable[tuple[int, dict[str, Any]]]) -> int:
    """
    Publish each ``(user_id, event)`` pair, isolating failures.

    Returns the number of successful publishes.
    """
    sent = 0
    for user_id, event in deliveries:
        try:
            notifier.publish(user_id, event)
        except Exception:
            logger.exception(
                "Push delivery failed for user=%s event=%s", user_id, event.get("type"),
            )
            continue
        sent += 1
    return sent


def publish_on_commit(
    notifier: Notifier,
    deliveries: Iterable[tuple[int, dict[str, Any]]],
) -> None:
    """Schedule ``deliver`` to run after the current transaction commits."""
    pending = list(deliveries)
    if not pending:
        return
    transaction.on_commit(lambda: deliver(notifier, pending))
