"""
cases.workflow — The case state machine as plain data.

Nothing in this module touches the database.  ``CaseWorkflowService``
consults it for every transition:

* ``TRANSITIONS``  — event → (allowed source statuses, target status).
* ``notification_recipients`` — who is told about an event.
* ``replay_history`` — rebuild a case's status from its audit trail.

Status diagram::

    PENDING ──link──▶ AWAITING_RESPONSE ──accept──▶ ACCEPTED ──nominate──▶ WITNESSES_NOMINATED
                             │                          │                        │
                          decline                       └──────panel─────┬───────┘
                             ▼                                           ▼
                        UNRESOLVED ◀──mark-unresolved── (any)      PANEL_CREATED
                                                                         │ begin
                                                                         ▼
                                                  RESOLVED ◀──resolve── MEDIATION_IN_PROGRESS

    CANCELLED is reachable from every non-terminal status.
    The admin override may set any status from any status.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from .models import CaseStatus


class WorkflowEvent(str, Enum):
    CREATE_CASE = "create_case"
    LINK_RESPONDENT = "link_respondent"
    ACCEPT = "accept"
    DECLINE = "decline"
    NOMINATE_WITNESSES = "nominate_witnesses"
    CREATE_PANEL = "create_panel"
    BEGIN_MEDIATION = "begin_mediation"
    RESOLVE = "resolve"
    MARK_UNRESOLVED = "mark_unresolved"
    ADMIN_SET_STATUS = "admin_set_status"
    CANCEL = "cancel"
    ATTACH_EVIDENCE = "attach_evidence"
    SUBMIT_WITNESS_STATEMENT = "submit_witness_statement"


TERMINAL: frozenset[str] = frozenset({
    CaseStatus.RESOLVED,
    CaseStatus.UNRESOLVED,
    CaseStatus.CANCELLED,
})

ALL_STATUSES: frozenset[str] = frozenset(CaseStatus.values)

NON_TERMINAL: frozenset[str] = ALL_STATUSES - TERMINAL


@dataclass(frozen=True)
class Transition:
    sources: frozenset[str]
    target: str | None


# Events with a fixed target.  ADMIN_SET_STATUS takes its target from the
# caller; bookkeeping events keep the current status (target ``None``).
TRANSITIONS: dict[WorkflowEvent, Transition] = {
    WorkflowEvent.LINK_RESPONDENT: Transition(
        frozenset({CaseStatus.PENDING}), CaseStatus.AWAITING_RESPONSE,
    ),
    WorkflowEvent.ACCEPT: Transition(
        frozenset({CaseStatus.AWAITING_RESPONSE}), CaseStatus.ACCEPTED,
    ),
    WorkflowEvent.DECLINE: Transition(
        frozenset({CaseStatus.AWAITING_RESPONSE}), CaseStatus.UNRESOLVED,
    ),
    WorkflowEvent.NOMINATE_WITNESSES: Transition(
        frozenset({CaseStatus.ACCEPTED}), CaseStatus.WITNESSES_NOMINATED,
    ),
    WorkflowEvent.CREATE_PANEL: Transition(
        frozenset({CaseStatus.ACCEPTED, CaseStatus.WITNESSES_NOMINATED}), CaseStatus.PANEL_CREATED,
    ),
    WorkflowEvent.BEGIN_MEDIATION: Transition(
        frozenset({CaseStatus.PANEL_CREATED}), CaseStatus.MEDIATION_IN_PROGRESS,
    ),
    WorkflowEvent.RESOLVE: Transition(
        frozenset({CaseStatus.MEDIATION_IN_PROGRESS}), CaseStatus.RESOLVED,
    ),
    WorkflowEvent.MARK_UNRESOLVED: Transition(NON_TERMINAL, CaseStatus.UNRESOLVED),
    WorkflowEvent.ADMIN_SET_STATUS: Transition(ALL_STATUSES, None),
    WorkflowEvent.CANCEL: Transition(NON_TERMINAL, CaseStatus.CANCELLED),
    WorkflowEvent.ATTACH_EVIDENCE: Transition(NON_TERMINAL, None),
    WorkflowEvent.SUBMIT_WITNESS_STATEMENT: Transition(NON_TERMINAL, None),
}

# Statuses in which a complainant (not an admin) may still cancel.
COMPLAINANT_CANCELLABLE: frozenset[str] = frozenset({
    CaseStatus.PENDING,
    CaseStatus.AWAITING_RESPONSE,
})


def initial_status(respondent_linked: bool) -> str:
    return CaseStatus.AWAITING_RESPONSE if respondent_linked else CaseStatus.PENDING


def is_allowed(event: WorkflowEvent, current: str) -> bool:
    return str(current) in TRANSITIONS[event].sources


@dataclass(frozen=True)
class Parties:
    complainant_id: int
    respondent_id: int | None = None

    @property
    def ids(self) -> list[int]:
        ids = [self.complainant_id]
        if self.respondent_id is not None and self.respondent_id != self.complainant_id:
            ids.append(self.respondent_id)
        return ids


def notification_recipients(
    event: WorkflowEvent,
    parties: Parties,
    new_witness_ids: Sequence[int] = (),
    panel_member_ids: Sequence[int] = (),
) -> list[int]:
    """
    Return the ordered, de-duplicated user ids to notify for ``event``.

    Total over ``WorkflowEvent``: every event maps to a (possibly empty)
    recipient list.
    """
    if event in (WorkflowEvent.ACCEPT, WorkflowEvent.DECLINE):
        ids: list[int] = [parties.complainant_id]
    elif event is WorkflowEvent.NOMINATE_WITNESSES:
        ids = list(new_witness_ids)
    elif event is WorkflowEvent.CREATE_PANEL:
        ids = parties.ids + list(panel_member_ids)
    elif event in (WorkflowEvent.ATTACH_EVIDENCE, WorkflowEvent.SUBMIT_WITNESS_STATEMENT):
        ids = []
    else:
        # CREATE_CASE, LINK_RESPONDENT, BEGIN_MEDIATION, RESOLVE,
        # MARK_UNRESOLVED, ADMIN_SET_STATUS, CANCEL
        ids = parties.ids
    return _unique(ids)


def _unique(ids: Iterable[int]) -> list[int]:
    seen: list[int] = []
    for uid in ids:
        if uid not in seen:
            seen.append(uid)
    return seen


class HistoryGap(ValueError):
    """Raised when consecutive audit entries do not chain."""


def replay_history(entries: Iterable, initial: str | None = None) -> str | None:
    """
    Fold audit entries (oldest first) into the resulting status.

    Each entry's ``previous_status`` must equal the status produced by the
    entry before it; the first entry is checked against ``initial`` when
    given.  Returns the final status, or ``initial`` for no entries.
    """
    status = initial
    for index, entry in enumerate(entries):
        previous = entry.previous_status or None
        if index > 0 or initial is not None:
            if previous != status:
                raise HistoryGap(
                    f"Entry {index} ({entry.action}) starts from {previous!r}, "
                    f"expected {status!r}."
                )
        status = entry.new_status
    return status
