"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions     Domain-specific exceptions and the ``ErrorKind`` taxonomy.
result         ``Ok`` / ``Err`` tagged results and ``returns_result``.
identity       ``CallerIdentity`` passed into every service call.
access         Relationship guards and queryset scope dispatch.
transactions   Helpers for ``transaction.atomic`` + ``select_for_update``.
notifications  Synchronous notification creation helper.
push           ``Notifier`` capability and post-commit delivery.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.result import returns_result
    from core.domain.identity import CallerIdentity
    from core.domain.notifications import NotificationService
    from core.domain.transactions import lock_for_update
    from core.domain.access import require_relationship
"""
