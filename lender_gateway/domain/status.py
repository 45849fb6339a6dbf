"""Lender application state machine"""

from typing import Dict, FrozenSet
from lender_gateway.domain.models import ApplicationStatus as S

PENDING_STATUSES: FrozenSet[S] = frozenset({S.PENDING, S.SUBMITTED, S.UNDER_REVIEW})
OFFER_STATUSES: FrozenSet[S] = frozenset({S.APPROVED, S.CONDITIONAL_APPROVAL, S.COUNTER_OFFER})
TERMINAL_STATUSES: FrozenSet[S] = frozenset(
    {S.APPROVED, S.REJECTED, S.CONDITIONAL_APPROVAL, S.COUNTER_OFFER, S.EXPIRED}
)

_DECISIONS = frozenset(
    {
        S.APPROVED,
        S.REJECTED,
        S.CONDITIONAL_APPROVAL,
        S.COUNTER_OFFER,
        S.DOCUMENTS_REQUIRED,
        S.FAILED,
        S.EXPIRED,
    }
)

# Forward edges only; FAILED -> SUBMITTED is the retry edge
TRANSITIONS: Dict[S, FrozenSet[S]] = {
    S.PENDING: frozenset({S.SUBMITTED}),
    S.SUBMITTED: _DECISIONS | {S.UNDER_REVIEW},
    S.UNDER_REVIEW: _DECISIONS,
    S.DOCUMENTS_REQUIRED: (_DECISIONS - {S.DOCUMENTS_REQUIRED}) | {S.UNDER_REVIEW},
    S.FAILED: frozenset({S.SUBMITTED}),
    S.APPROVED: frozenset(),
    S.REJECTED: frozenset(),
    S.CONDITIONAL_APPROVAL: frozenset(),
    S.COUNTER_OFFER: frozenset(),
    S.EXPIRED: frozenset(),
}


def can_transition(current: S, target: S) -> bool:
    """True if target is reachable in one forward step (repeats are allowed)"""
    return current == target or target in TRANSITIONS[current]


def is_terminal(status: S) -> bool:
    return status in TERMINAL_STATUSES


def is_retryable(status: S) -> bool:
    return status == S.FAILED


def describe(status: S) -> str:
    """APPROVED -> 'approved', COUNTER_OFFER -> 'counter offer'"""
    return status.value.lower().replace("_", " ")
