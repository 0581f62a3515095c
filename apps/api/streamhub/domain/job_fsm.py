"""Upload job lifecycle transition rules."""

from streamhub.errors import InvalidTransitionError
from streamhub.schemas.upload import UploadStatus

TERMINAL_STATES: frozenset[UploadStatus] = frozenset({UploadStatus.COMPLETED, UploadStatus.FAILED})

_ALLOWED_TRANSITIONS: dict[UploadStatus, set[UploadStatus]] = {
    UploadStatus.PENDING: {UploadStatus.UPLOADED},
    UploadStatus.UPLOADED: {UploadStatus.PROCESSING},
    UploadStatus.PROCESSING: {UploadStatus.PROCESSING, UploadStatus.COMPLETED, UploadStatus.FAILED},
    UploadStatus.COMPLETED: set(),
    UploadStatus.FAILED: set(),
}


def is_terminal(status: UploadStatus) -> bool:
    return status in TERMINAL_STATES


def allowed_next_statuses(status: UploadStatus) -> list[UploadStatus]:
    """Return deterministically ordered allowed successors for a status."""
    return sorted(_ALLOWED_TRANSITIONS.get(status, set()), key=lambda s: s.value)


def ensure_edge(old_status: UploadStatus, new_status: UploadStatus) -> None:
    """Reject status pairs that are not edges of the lifecycle graph.

    Terminal sources are not rejected here: the store reports them as a
    conflict so that late or duplicate reports stay harmless.
    """
    if is_terminal(old_status):
        return
    if new_status not in _ALLOWED_TRANSITIONS.get(old_status, set()):
        raise InvalidTransitionError(
            f"{old_status.value} -> {new_status.value} is not a valid upload job transition "
            f"(allowed: {[s.value for s in allowed_next_statuses(old_status)]})"
        )
