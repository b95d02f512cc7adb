"""
Purpose: In-memory task store and runner directory.
What it does:
- InMemoryTaskStore owns tasks by id and performs compare-and-set under a lock,
  so threads racing on the same task behave like processes racing on a row.
- InMemoryRunnerDirectory holds runner snapshots and completed-task history.

Used by tests, simulations and local demos. backend.marketplace.store is the
Django ORM counterpart.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from errands.models import Task, TaskStatus, parse_categories
from runners.loader import load_completed_history, load_runners
from runners.models import Runner

from .base import TaskNotFound


class InMemoryTaskStore:
    """
    Dict-backed TaskStore. Stored tasks are immutable, so reads hand out the
    stored object itself.
    """

    def __init__(self, tasks: Iterable[Task] = ()):
        self._tasks: Dict[str, Task] = {}
        self._lock = threading.Lock()
        for task in tasks:
            self.add(task)

    # --- Public API ---

    def add(self, task: Task) -> Task:
        """
        Insert a freshly posted task. Returns the stored task.
        """
        with self._lock:
            if task.id in self._tasks:
                #idempotency : dont double insert
                return self._tasks[task.id]
            self._tasks[task.id] = task
            return task

    def get_task(self, task_id: str) -> Task:
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    def list_tasks_by_status(self, status: TaskStatus, limit: Optional[int] = None) -> List[Task]:
        with self._lock:
            matching = [task for task in self._tasks.values() if task.status == status]

        # oldest offer first, then oldest task
        matching.sort(key=lambda t: (t.assigned_at or t.created_at, t.created_at, t.id))
        if limit is not None:
            matching = matching[:limit]
        return matching

    def compare_and_set(self, expected: Task, updated: Task) -> bool:
        with self._lock:
            current = self._tasks.get(expected.id)
            if current is None:
                raise TaskNotFound(expected.id)

            if (
                current.version != expected.version
                or current.status != expected.status
                or current.assigned_runner != expected.assigned_runner
            ):
                return False

            self._tasks[expected.id] = replace(updated, version=expected.version + 1)
            return True

    def __len__(self) -> int:
        return len(self._tasks)


class InMemoryRunnerDirectory:
    """
    Dict-backed RunnerDirectory.
    """

    def __init__(
        self,
        runners: Iterable[Runner] = (),
        history: Optional[Mapping[str, Iterable[Union[str, Iterable[str]]]]] = None,
    ):
        self._runners: Dict[str, Runner] = {runner.id: runner for runner in runners}
        self._history: Dict[str, List[FrozenSet[str]]] = defaultdict(list)
        for runner_id, completed in (history or {}).items():
            for categories in completed:
                self._history[runner_id].append(parse_categories(categories))
        self._lock = threading.Lock()

    @classmethod
    def from_csv(cls, runners_path, history_path=None) -> InMemoryRunnerDirectory:
        history = load_completed_history(history_path) if history_path is not None else None
        return cls(load_runners(runners_path), history)

    def upsert_runner(self, runner: Runner) -> None:
        with self._lock:
            self._runners[runner.id] = runner

    def set_location(self, runner_id: str, lat: float, lon: float, at: datetime) -> None:
        with self._lock:
            runner = self._runners[runner_id]
            self._runners[runner_id] = replace(runner, location=(float(lat), float(lon)), location_updated_at=at)

    def record_completion(self, runner_id: str, categories: Union[str, Iterable[str]]) -> None:
        with self._lock:
            self._history[runner_id].append(parse_categories(categories))

    def get_runner(self, runner_id: str) -> Optional[Runner]:
        return self._runners.get(runner_id)

    def list_online_runners(self) -> List[Runner]:
        with self._lock:
            return [runner for runner in self._runners.values() if runner.is_online]

    def completed_categories(self, runner_id: str) -> Sequence[FrozenSet[str]]:
        with self._lock:
            return list(self._history.get(runner_id, ()))
