"""
Lead status state machine

Statuses are grouped into ordered phases. An open lead may move within its
phase or forward, or drop out as REJECTED / CLOSED_LOST. ENROLLED and
ARCHIVED are only reachable through their dedicated operations.
"""

from typing import Optional

from schoolerp.models.admission import AdmissionStatus as S
from schoolerp.utils.exceptions import InvalidTransitionError
from schoolerp.utils.helpers import log_info, log_warning

PHASES = {
    S.NEW: 0,
    S.CONTACTED: 1, S.ENGAGED: 1, S.TOUR_SCHEDULED: 1, S.TOUR_COMPLETED: 1,
    S.APPLICATION_SENT: 2, S.APPLICATION_RECEIVED: 2, S.FEE_PAID: 2,
    S.ASSESSMENT_SCHEDULED: 3, S.INTERVIEW_SCHEDULED: 3,
    S.ASSESSMENT_COMPLETED: 3, S.INTERVIEW_COMPLETED: 3,
    S.DECISION_PENDING: 4, S.WAITLISTED: 4,
    S.OFFERED: 5,
    S.ACCEPTED: 6,
    S.ENROLLED: 7,
}

TERMINAL = frozenset({S.ENROLLED, S.REJECTED, S.CLOSED_LOST, S.ARCHIVED})
EXITS = frozenset({S.REJECTED, S.CLOSED_LOST})
ENROLLABLE = frozenset({S.OFFERED, S.ACCEPTED, S.FEE_PAID})

VIA_ENROLLMENT = 'enrollment'
VIA_ARCHIVE = 'archive'


def transition_error(current: str, target: str, via: Optional[str] = None) -> Optional[str]:
    """Reason a transition is refused, or None when it is allowed"""
    if target not in S.ALL:
        return f"Unknown status {target}"

    if target == S.ARCHIVED:
        if via != VIA_ARCHIVE:
            return "Leads can only be archived through the archive action"
        if current == S.ARCHIVED:
            return "Lead is already archived"
        return None

    if current in TERMINAL:
        return f"Lead is {current} and can no longer change status"

    if target == S.ENROLLED:
        if via != VIA_ENROLLMENT:
            return "Leads are enrolled through confirmation payment or conversion"
        if current not in ENROLLABLE:
            return f"Cannot enroll a lead in status {current}"
        return None

    if target in EXITS:
        return None

    if PHASES[target] < PHASES[current]:
        return f"Cannot move lead back from {current} to {target}"
    return None


def can_transition(current: str, target: str, via: Optional[str] = None) -> bool:
    return transition_error(current, target, via) is None


def check_transition(current: str, target: str, via: Optional[str] = None) -> None:
    reason = transition_error(current, target, via)
    if reason:
        raise InvalidTransitionError(reason)


def transition_lead(lead, target: str, via: Optional[str] = None) -> None:
    """Apply a requested status change, raising when it is not allowed"""
    check_transition(lead.status, target, via)
    previous = lead.status
    lead.status = target
    log_info(f"Lead {lead.registration_number} {previous} -> {target}")


def advance_lead(lead, target: str, via: Optional[str] = None) -> bool:
    """Apply a status change triggered by another record when it is allowed"""
    reason = transition_error(lead.status, target, via)
    if reason:
        log_warning(f"Lead {lead.registration_number} kept at {lead.status}: {reason}")
        return False
    if lead.status != target:
        log_info(f"Lead {lead.registration_number} {lead.status} -> {target}")
        lead.status = target
    return True
