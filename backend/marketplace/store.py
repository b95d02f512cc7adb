"""
Purpose: Django ORM implementations of TaskStore and RunnerDirectory.
What it does:
- DjangoTaskStore maps Errand rows to errands.models.Task and performs the
  compare-and-set as a single conditional UPDATE, so the database decides
  which of two racing writers wins.
- DjangoRunnerDirectory reads RunnerPresence rows and derives completed-task
  history from completed Errands.
"""

from __future__ import annotations

from typing import FrozenSet, List, Optional, Sequence

from django.db.models import F

from errands.models import CancelReason, Task, TaskStatus, parse_categories
from runners.models import Runner
from storage.base import TaskNotFound

from .models import Errand, RunnerPresence


def errand_to_task(errand: Errand) -> Task:
    origin = None
    if errand.origin_lat is not None and errand.origin_lng is not None:
        origin = (errand.origin_lat, errand.origin_lng)

    return Task(
        id=errand.id,
        title=errand.title,
        caller_id=errand.caller_id,
        categories=parse_categories(errand.categories),
        origin=origin,
        status=TaskStatus(errand.status),
        assigned_runner=errand.assigned_runner_id,
        assigned_at=errand.assigned_at,
        declined_runner_ids=frozenset(errand.declined_runner_ids or ()),
        timed_out_runner_ids=frozenset(errand.timed_out_runner_ids or ()),
        escalation_attempts=errand.escalation_attempts,
        accepted_runner=errand.runner_id,
        cancel_reason=CancelReason(errand.cancel_reason) if errand.cancel_reason else None,
        created_at=errand.created_at,
        version=errand.version,
    )


def _mutable_fields(task: Task) -> dict:
    # Everything a transition may change; identity, origin and created_at never move.
    return {
        "status": task.status.value,
        "assigned_runner_id": task.assigned_runner,
        "assigned_at": task.assigned_at,
        "declined_runner_ids": sorted(task.declined_runner_ids),
        "timed_out_runner_ids": sorted(task.timed_out_runner_ids),
        "escalation_attempts": task.escalation_attempts,
        "runner_id": task.accepted_runner,
        "cancel_reason": task.cancel_reason.value if task.cancel_reason else None,
    }


class DjangoTaskStore:

    def add(self, task: Task) -> Task:
        """
        Insert a freshly posted task (no-op when the id already exists).
        """
        lat, lng = task.origin if task.origin is not None else (None, None)
        errand, _ = Errand.objects.get_or_create(
            pk=task.id,
            defaults={
                "title": task.title,
                "caller_id": task.caller_id,
                "categories": ",".join(sorted(task.categories)),
                "origin_lat": lat,
                "origin_lng": lng,
                "created_at": task.created_at,
                "version": task.version,
                **_mutable_fields(task),
            },
        )
        return errand_to_task(errand)

    def get_task(self, task_id: str) -> Task:
        try:
            return errand_to_task(Errand.objects.get(pk=task_id))
        except Errand.DoesNotExist:
            raise TaskNotFound(task_id)

    def list_tasks_by_status(self, status: TaskStatus, limit: Optional[int] = None) -> List[Task]:
        qs = Errand.objects.filter(status=status.value).order_by("assigned_at", "created_at", "pk")
        if limit is not None:
            qs = qs[:limit]
        return [errand_to_task(errand) for errand in qs]

    def compare_and_set(self, expected: Task, updated: Task) -> bool:
        updated_rows = Errand.objects.filter(
            pk=expected.id,
            version=expected.version,
            status=expected.status.value,
            assigned_runner_id=expected.assigned_runner,
        ).update(version=F("version") + 1, **_mutable_fields(updated))

        if updated_rows == 1:
            return True
        if not Errand.objects.filter(pk=expected.id).exists():
            raise TaskNotFound(expected.id)
        return False


class DjangoRunnerDirectory:

    def list_online_runners(self) -> List[Runner]:
        runners = []
        for presence in RunnerPresence.objects.filter(is_online=True).order_by("runner_id"):
            location = None
            if presence.latitude is not None and presence.longitude is not None:
                location = (presence.latitude, presence.longitude)
            runners.append(
                Runner(
                    id=presence.runner_id,
                    is_online=True,
                    location=location,
                    location_updated_at=presence.location_updated_at if location else None,
                )
            )
        return runners

    def completed_categories(self, runner_id: str) -> Sequence[FrozenSet[str]]:
        rows = Errand.objects.filter(
            runner_id=runner_id, status=Errand.Status.COMPLETED
        ).values_list("categories", flat=True)
        return [parse_categories(raw) for raw in rows]
