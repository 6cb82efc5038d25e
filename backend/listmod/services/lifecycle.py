from __future__ import annotations
from listmod.errors import ConflictError
from listmod.models.submission import SubmissionStatus as S

ALLOWED_TRANSITIONS: dict[S, frozenset[S]] = {
    S.PENDING: frozenset({S.CLAIMED, S.UNDER_CONSIDERATION, S.DELETED}),
    S.CLAIMED: frozenset({S.PENDING, S.UNDER_CONSIDERATION, S.DENIED, S.ACCEPTED, S.DELETED}),
    S.UNDER_CONSIDERATION: frozenset({S.DENIED, S.ACCEPTED, S.DELETED}),
    # Denied is not terminal: the submitter can resubmit by editing it
    S.DENIED: frozenset({S.PENDING, S.DELETED}),
    S.ACCEPTED: frozenset(),
    S.DELETED: frozenset(),
}

# States a submitter may edit in
SUBMITTER_EDITABLE: frozenset[S] = frozenset({S.PENDING, S.DENIED})


def can_transition(current: str | S, target: S) -> bool:
    return target in ALLOWED_TRANSITIONS[S(current)]


def ensure_transition(current: str | S, target: S) -> None:
    if not can_transition(current, target):
        current = S(current)
        if current == target:
            raise ConflictError(f"This submission is already in the {current.value} state!")
        raise ConflictError(f"Cannot move a submission from {current.value} to {target.value}")
