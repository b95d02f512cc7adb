"""
Purpose: Interfaces of the persistence collaborators the engine consumes.
What it does:
Describes what the assignment engine needs from the task store and the runner
directory, without owning either. Concrete adapters live in storage.memory
(tests, simulations) and backend.marketplace.store (Django ORM).

Rule: every mutation of a task goes through compare_and_set.
"""

from __future__ import annotations

from typing import FrozenSet, List, Optional, Protocol, Sequence

from errands.models import Task, TaskStatus
from runners.models import Runner


class TaskNotFound(LookupError):
    """Raised when a task id is unknown to the store."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class TaskStore(Protocol):
    """
    Task persistence collaborator.
    """

    def get_task(self, task_id: str) -> Task:
        """Current persisted task. Raises TaskNotFound."""
        ...

    def list_tasks_by_status(self, status: TaskStatus, limit: Optional[int] = None) -> List[Task]:
        """Tasks in `status`, oldest offer/creation first."""
        ...

    def compare_and_set(self, expected: Task, updated: Task) -> bool:
        """
        Persist `updated` only if the stored task still matches `expected`
        (same version, status and assigned runner). The stored version becomes
        expected.version + 1. Returns False when another writer got there first.
        """
        ...


class RunnerDirectory(Protocol):
    """
    Runner identity/location collaborator. Read only.
    """

    def list_online_runners(self) -> List[Runner]:
        ...

    def completed_categories(self, runner_id: str) -> Sequence[FrozenSet[str]]:
        """One category set per task the runner has completed."""
        ...
