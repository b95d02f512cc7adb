from dataclasses import replace
from datetime import datetime, timedelta

from errands.models import CancelReason, Task, TaskStatus
from dispatch.errors import TaskStateException

# Pure transitions. None of these touch storage: the engine persists the
# returned Task through TaskStore.compare_and_set.


def is_offer_expired(task: Task, now: datetime, decision_window_seconds: float) -> bool:
    """
    True once `now - assigned_at >= window` for a pending offer.
    The boundary itself counts as expired.
    """
    if task.status != TaskStatus.OFFER_PENDING or task.assigned_at is None:
        return False
    return now - task.assigned_at >= timedelta(seconds=decision_window_seconds)


def offer_to_runner(task: Task, runner_id: str, now: datetime) -> Task:
    """
    Unassigned -> OfferPending(runner).
    """
    if task.status != TaskStatus.PENDING or task.assigned_runner is not None:
        raise TaskStateException(task.id, f"Cannot offer task {task.id} from {task.status.value}")

    if runner_id in task.declined_runner_ids:
        raise TaskStateException(task.id, f"Runner {runner_id} already declined task {task.id}")

    return replace(task, status=TaskStatus.OFFER_PENDING, assigned_runner=runner_id, assigned_at=now)


def _require_holder(task: Task, runner_id: str) -> None:
    if task.status != TaskStatus.OFFER_PENDING or task.assigned_runner != runner_id:
        raise TaskStateException(task.id, f"Runner {runner_id} does not hold task {task.id}")


def release_offer(task: Task, runner_id: str, *, timed_out: bool = False) -> Task:
    """
    OfferPending(runner) -> Unassigned, after a decline or an expiry.
    The runner is excluded from this task for good.
    """
    _require_holder(task, runner_id)

    timed_out_ids = task.timed_out_runner_ids | {runner_id} if timed_out else task.timed_out_runner_ids
    return replace(
        task,
        status=TaskStatus.PENDING,
        assigned_runner=None,
        assigned_at=None,
        declined_runner_ids=task.declined_runner_ids | {runner_id},
        timed_out_runner_ids=timed_out_ids,
        escalation_attempts=task.escalation_attempts + 1,
    )


def rollback_offer(task: Task, runner_id: str) -> Task:
    """
    Emergency Fallback: delivery never reached the runner, so the offer is
    withdrawn WITHOUT counting it as a decline. The task is re-rankable.
    """
    _require_holder(task, runner_id)
    return replace(task, status=TaskStatus.PENDING, assigned_runner=None, assigned_at=None)


def accept_offer(task: Task, runner_id: str) -> Task:
    """
    OfferPending(runner) -> Accepted. Terminal for the engine.
    """
    _require_holder(task, runner_id)
    return replace(task, status=TaskStatus.ACCEPTED, accepted_runner=runner_id)


def cancel_task(task: Task, reason: CancelReason) -> Task:
    """
    Pending / OfferPending -> Cancelled(reason). Any live offer is dropped.
    """
    if not task.status.is_open:
        raise TaskStateException(task.id, f"Cannot cancel task {task.id} from {task.status.value}")

    return replace(
        task,
        status=TaskStatus.CANCELLED,
        assigned_runner=None,
        assigned_at=None,
        cancel_reason=reason,
    )
