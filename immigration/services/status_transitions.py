"""
Status transition rules for main and individual processes.

Two static adjacency tables map each status to the statuses it may move
to next.  Both are read-only (MappingProxyType of frozensets) and compiled
into the application; nothing here touches the database.

Validation rules (shared by both workflows):
  - Staying in the same status is always allowed.
  - A current status absent from the table rejects every move (fails closed).
  - Otherwise the move is allowed iff the candidate is listed for the current status.

Individual workflow:
    pending_documents       → documents_submitted | cancelled
    documents_submitted     → documents_approved | pending_documents | cancelled
    documents_approved      → preparing_submission | cancelled
    preparing_submission    → submitted_to_government | cancelled
    submitted_to_government → under_government_review | cancelled
    under_government_review → government_approved | government_rejected | cancelled
    government_approved     → completed | cancelled
    government_rejected     → pending_documents | cancelled
    completed               → under_government_review
    cancelled               → pending_documents

Main workflow:
    draft       → in_progress | cancelled
    in_progress → completed | cancelled
    completed   → in_progress
    cancelled   → in_progress
"""

from types import MappingProxyType

PROCESS_TYPES = ("main", "individual")

INDIVIDUAL_PROCESS_STATUSES = (
    "pending_documents",
    "documents_submitted",
    "documents_approved",
    "preparing_submission",
    "submitted_to_government",
    "under_government_review",
    "government_approved",
    "government_rejected",
    "completed",
    "cancelled",
)

INDIVIDUAL_STATUS_TRANSITIONS = MappingProxyType({
    "pending_documents":       frozenset({"documents_submitted", "cancelled"}),
    "documents_submitted":     frozenset({"documents_approved", "pending_documents", "cancelled"}),
    "documents_approved":      frozenset({"preparing_submission", "cancelled"}),
    "preparing_submission":    frozenset({"submitted_to_government", "cancelled"}),
    "submitted_to_government": frozenset({"under_government_review", "cancelled"}),
    "under_government_review": frozenset({"government_approved", "government_rejected", "cancelled"}),
    "government_approved":     frozenset({"completed", "cancelled"}),
    "government_rejected":     frozenset({"pending_documents", "cancelled"}),
    "completed":               frozenset({"under_government_review"}),  # reopen for appeal
    "cancelled":               frozenset({"pending_documents"}),
})

MAIN_STATUS_TRANSITIONS = MappingProxyType({
    "draft":       frozenset({"in_progress", "cancelled"}),
    "in_progress": frozenset({"completed", "cancelled"}),
    "completed":   frozenset({"in_progress"}),
    "cancelled":   frozenset({"in_progress"}),
})

_TABLES = MappingProxyType({
    "main": MAIN_STATUS_TRANSITIONS,
    "individual": INDIVIDUAL_STATUS_TRANSITIONS,
})


def _table_for(process_type: str):
    try:
        return _TABLES[process_type]
    except KeyError:
        raise ValueError(
            f"Unknown process type {process_type!r}; expected one of {PROCESS_TYPES}"
        ) from None


def _is_valid(table, current: str, candidate: str) -> bool:
    if current == candidate:
        return True
    allowed = table.get(current)
    if allowed is None:
        return False
    return candidate in allowed


def is_valid_individual_status_transition(current: str, candidate: str) -> bool:
    """Return True if an individual process may move current → candidate."""
    return _is_valid(INDIVIDUAL_STATUS_TRANSITIONS, current, candidate)


def is_valid_main_status_transition(current: str, candidate: str) -> bool:
    """Return True if a main process may move current → candidate."""
    return _is_valid(MAIN_STATUS_TRANSITIONS, current, candidate)


def is_valid_status_transition(current: str, candidate: str, process_type: str) -> bool:
    """Dispatch on process_type ("main" | "individual").

    Raises:
        ValueError: for any other process_type.
    """
    return _is_valid(_table_for(process_type), current, candidate)


def get_next_allowed_statuses(current: str, process_type: str) -> list[str]:
    """Sorted list of statuses reachable from current; [] when current is unknown."""
    return sorted(_table_for(process_type).get(current, ()))


def format_status(status: str) -> str:
    """pending_documents → "Pending Documents"."""
    return " ".join(word.capitalize() for word in (status or "").split("_") if word)


def transition_table(process_type: str) -> dict[str, list[str]]:
    """JSON-friendly copy of one table."""
    return {k: sorted(v) for k, v in _table_for(process_type).items()}
