"""
Purpose: Deliver an offer to the chosen runner, exactly one retry on failure.
What it does:
1. Calls the delivery collaborator for (task, runner).
2. On a DeliveryError, a transport error (OSError) or an unrecognized
   status, waits a fixed backoff and tries one more time. A second failure is
   a DispatchFailure. Any other exception is a bug and propagates on the
   first attempt.
3. After a success status, re-reads the task and checks the offer really
   landed: the intended runner holds it, or the task is already cancelled.
   Anything else is a VerificationFailure, logged loudly and never retried.

Cancellation statuses (no_eligible_runners, ...) are not errors: they come
back inside the confirmation and the engine turns them into a cancellation.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from errands.models import CancelReason, Task, TaskStatus
from notifications.base import DeliveryClient, DeliveryError, DeliveryStatus
from runners.policy import AssignmentPolicy, default_assignment_policy
from storage.base import TaskStore

from .errors import DispatchFailure, VerificationFailure

logger = logging.getLogger(__name__)

MAX_DELIVERY_ATTEMPTS = 2  # first call + one retry


@dataclass(frozen=True)
class AssignmentConfirmation:
    task_id: str
    runner_id: str
    status: DeliveryStatus
    attempts: int

    @property
    def cancel_reason(self) -> Optional[CancelReason]:
        return self.status.cancel_reason

    @property
    def cancelled(self) -> bool:
        return self.cancel_reason is not None


class NotificationDispatcher:
    """
    Wraps a DeliveryClient with the retry and verification rules.
    """

    def __init__(
        self,
        delivery_client: DeliveryClient,
        task_store: TaskStore,
        policy: Optional[AssignmentPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.delivery_client = delivery_client
        self.task_store = task_store
        self.policy = policy or default_assignment_policy()
        self.sleep = sleep

    def notify(self, task: Task, runner_id: str) -> AssignmentConfirmation:
        last_error: Optional[Exception] = None

        for attempt in range(1, MAX_DELIVERY_ATTEMPTS + 1):
            if attempt > 1:
                logger.warning("Retrying delivery of task %s to runner %s in %.1fs",
                               task.id, runner_id, self.policy.dispatch_retry_backoff_seconds)
                self.sleep(self.policy.dispatch_retry_backoff_seconds)

            try:
                raw_status = self.delivery_client.deliver(task.id, runner_id)
            except (DeliveryError, OSError) as exc:
                last_error = exc
                logger.warning("Delivery attempt %d for task %s failed: %s", attempt, task.id, exc)
                continue

            status = DeliveryStatus.parse(raw_status)
            if status is None:
                last_error = ValueError(f"unexpected delivery status {raw_status!r}")
                logger.warning("Delivery attempt %d for task %s returned unexpected status %r",
                               attempt, task.id, raw_status)
                continue

            confirmation = AssignmentConfirmation(
                task_id=task.id, runner_id=runner_id, status=status, attempts=attempt
            )
            if status.is_success:
                self._verify(task.id, runner_id)
            return confirmation

        raise DispatchFailure(task.id, runner_id) from last_error

    def _verify(self, task_id: str, runner_id: str) -> None:
        current = self.task_store.get_task(task_id)

        if current.assigned_runner == runner_id:
            return
        if current.status == TaskStatus.CANCELLED:
            return

        logger.error(
            "Verification failed for task %s: expected runner %s, store shows status=%s assigned_runner=%s",
            task_id, runner_id, current.status.value, current.assigned_runner,
        )
        raise VerificationFailure(task_id, runner_id)
