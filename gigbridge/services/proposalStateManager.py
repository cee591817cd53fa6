"""
Proposal State Manager
=======================

Finite state machine for proposal status. Withdraw and reject check
``validate_transition`` against the loaded status before writing; every
write is then a conditional ``UPDATE`` keyed on the states listed here.

State machine overview::

    submitted --> viewed
    submitted | viewed --> withdrawn   (freelancer)
    submitted | viewed --> rejected    (job owner)
    submitted          --> accepted    (job owner, via hire)
    submitted          --> excluded    (sibling of the hired proposal)

``accepted``, ``rejected``, ``withdrawn`` and ``excluded`` are terminal.
The structural graph also lists ``viewed -> accepted`` and ``viewed ->
excluded``; hiring applies the stricter ``HIREABLE_STATUSES`` on top.
"""

from __future__ import annotations

from gigbridge.models.proposal import ProposalStatus
from gigbridge.services.jobStateGuard import TransitionResult


VALID_TRANSITIONS: dict[ProposalStatus, set[ProposalStatus]] = {
    ProposalStatus.SUBMITTED: {
        ProposalStatus.VIEWED,
        ProposalStatus.WITHDRAWN,
        ProposalStatus.ACCEPTED,
        ProposalStatus.EXCLUDED,
        ProposalStatus.REJECTED,
    },
    ProposalStatus.VIEWED: {
        ProposalStatus.WITHDRAWN,
        ProposalStatus.ACCEPTED,
        ProposalStatus.EXCLUDED,
        ProposalStatus.REJECTED,
    },
    ProposalStatus.ACCEPTED: set(),
    ProposalStatus.REJECTED: set(),
    ProposalStatus.WITHDRAWN: set(),
    ProposalStatus.EXCLUDED: set(),
}

TERMINAL_STATUSES: frozenset[ProposalStatus] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)

# Non-terminal statuses; the partial unique index covers exactly these.
ACTIVE_STATUSES: frozenset[ProposalStatus] = frozenset({
    ProposalStatus.SUBMITTED,
    ProposalStatus.VIEWED,
})

HIREABLE_STATUSES: frozenset[ProposalStatus] = frozenset({
    ProposalStatus.SUBMITTED,
})

# Siblings in these statuses become ``excluded`` when another proposal is hired.
EXCLUDABLE_STATUSES: frozenset[ProposalStatus] = frozenset({
    ProposalStatus.SUBMITTED,
})


def is_terminal(status: ProposalStatus) -> bool:
    return status in TERMINAL_STATUSES


def validate_transition(
    current_status: ProposalStatus,
    new_status: ProposalStatus,
) -> TransitionResult:
    """Validate whether a proposal status transition is allowed."""
    allowed_targets = VALID_TRANSITIONS.get(current_status, set())
    if new_status in allowed_targets:
        return TransitionResult(allowed=True)
    if not allowed_targets:
        return TransitionResult(
            allowed=False,
            reason=f"Proposal is already {current_status.value}",
        )
    return TransitionResult(
        allowed=False,
        reason=(
            f"Invalid proposal transition: '{current_status.value}' -> '{new_status.value}'. "
            f"Allowed transitions from '{current_status.value}': "
            f"{', '.join(s.value for s in sorted(allowed_targets, key=lambda s: s.value))}."
        ),
    )


def get_valid_transitions(current_status: ProposalStatus) -> set[ProposalStatus]:
    """Return the set of statuses reachable from *current_status*."""
    return set(VALID_TRANSITIONS.get(current_status, set()))
