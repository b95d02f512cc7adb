"""
Purpose: Error taxonomy of the assignment engine.
What it does:
One exception type per way an assignment can go wrong, all rooted at
AssignmentError so callers can catch the family. Nothing here is swallowed by
the engine: every error reaches the caller of AssignmentEngine.
"""

from __future__ import annotations

from typing import Optional


class AssignmentError(Exception):
    """Base class; always carries the task id."""

    def __init__(self, task_id: str, message: Optional[str] = None):
        super().__init__(message or f"Assignment error on task {task_id}")
        self.task_id = task_id


class NoOriginLocation(AssignmentError):
    """The task has no resolvable origin; it is cancelled and never retried."""
    pass


class NoEligibleRunners(AssignmentError):
    """Nobody was eligible at creation, or the ranked pool was exhausted."""
    pass


class DispatchFailure(AssignmentError):
    """
    The delivery collaborator failed twice (first call + one retry).
    The offer has been rolled back; the task is re-rankable.
    """

    def __init__(self, task_id: str, runner_id: str, message: Optional[str] = None):
        super().__init__(task_id, message or f"Could not deliver task {task_id} to runner {runner_id}")
        self.runner_id = runner_id


class VerificationFailure(AssignmentError):
    """
    Delivery reported success but the persisted task does not show the
    intended runner (nor a cancellation). Points at a consistency bug.
    """

    def __init__(self, task_id: str, runner_id: str, message: Optional[str] = None):
        super().__init__(task_id, message or f"Task {task_id} is not held by runner {runner_id} after delivery")
        self.runner_id = runner_id


class ConcurrentModification(AssignmentError):
    """Compare-and-set lost against another writer and the new state is not a finished outcome."""
    pass


class OfferExpired(AssignmentError):
    """A runner acted on an offer after its decision window closed."""

    def __init__(self, task_id: str, runner_id: str, message: Optional[str] = None):
        super().__init__(task_id, message or f"Offer of task {task_id} to runner {runner_id} has expired")
        self.runner_id = runner_id


class OfferNotActive(AssignmentError):
    """A runner acted on a task they do not currently hold an offer for."""

    def __init__(self, task_id: str, runner_id: str, message: Optional[str] = None):
        super().__init__(task_id, message or f"Runner {runner_id} holds no offer for task {task_id}")
        self.runner_id = runner_id


class TaskStateException(AssignmentError):
    """Raised when an invalid task transition is attempted."""
    pass
