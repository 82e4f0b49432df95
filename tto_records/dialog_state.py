"""
Finite-state controller for confirmation dialogs (archive, review).
"""

from enum import Enum
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class DialogState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    SUBMITTING = "submitting"
    ERROR = "error"


class InvalidTransition(Exception):
    """Raised when a dialog is asked to move along an edge it does not have."""


TRANSITIONS = {
    DialogState.CLOSED: {DialogState.OPEN},
    DialogState.OPEN: {DialogState.SUBMITTING, DialogState.CLOSED, DialogState.ERROR},
    DialogState.SUBMITTING: {DialogState.CLOSED, DialogState.ERROR},
    DialogState.ERROR: {DialogState.SUBMITTING, DialogState.CLOSED, DialogState.ERROR},
}


class DialogController:
    """
    Tracks one dialog through closed -> open -> submitting -> closed | error.

    A dialog in the error state keeps its message until the user retries
    (back to submitting) or dismisses it (closed). Open -> error covers
    input that is rejected before any request is made.
    """

    def __init__(self, name: str):
        self.name = name
        self.state = DialogState.CLOSED
        self.error_message: Optional[str] = None

    def _move(self, target: DialogState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.name}: cannot go from {self.state.value} to {target.value}")
        logger.debug(f"Dialog {self.name}: {self.state.value} -> {target.value}")
        self.state = target

    @property
    def is_open(self) -> bool:
        return self.state != DialogState.CLOSED

    @property
    def is_submitting(self) -> bool:
        return self.state == DialogState.SUBMITTING

    def open(self) -> None:
        self._move(DialogState.OPEN)
        self.error_message = None

    def submit(self) -> None:
        self._move(DialogState.SUBMITTING)

    def fail(self, message: str) -> None:
        self._move(DialogState.ERROR)
        self.error_message = message

    def succeed(self) -> None:
        self._move(DialogState.CLOSED)
        self.error_message = None

    def close(self) -> None:
        """Dismiss the dialog; a request in flight must finish first."""
        if self.state == DialogState.CLOSED:
            return
        if self.state == DialogState.SUBMITTING:
            raise InvalidTransition(f"{self.name}: cannot close while submitting")
        self._move(DialogState.CLOSED)
        self.error_message = None
