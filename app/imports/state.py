"""Import session state machine."""

import logging

from app.db.models import ImportSession, ImportSessionState
from app.imports.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ImportSessionState, frozenset[ImportSessionState]] = {
    ImportSessionState.PENDING: frozenset(
        {
            ImportSessionState.REVIEWING,
            ImportSessionState.FAILED,
            ImportSessionState.CANCELLED,
        }
    ),
    ImportSessionState.REVIEWING: frozenset(
        {
            ImportSessionState.COMPLETED,
            ImportSessionState.FAILED,
            ImportSessionState.CANCELLED,
        }
    ),
    # Terminal states never change again
    ImportSessionState.COMPLETED: frozenset(),
    ImportSessionState.CANCELLED: frozenset(),
    ImportSessionState.FAILED: frozenset(),
}


def can_transition(current: ImportSessionState, target: ImportSessionState) -> bool:
    """Whether a session in ``current`` may move to ``target``."""
    return target in ALLOWED_TRANSITIONS[current]


def transition(session: ImportSession, target: ImportSessionState) -> None:
    """Move a session to a new state.

    Entering a terminal state releases the single active slot so the next
    upload can start. The caller commits.

    Args:
        session: Import session to update.
        target: State to move to.

    Raises:
        InvalidTransitionError: If the move is not allowed.
    """
    current = ImportSessionState(session.state)
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move import session from {current.value} to {target.value}"
        )

    session.state = target
    if target.is_terminal:
        session.active_slot = None
        session.commit_started_at = None

    logger.info("Import session %s: %s -> %s", session.id, current.value, target.value)
