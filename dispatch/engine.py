"""
Purpose: Orchestrator / decision pipeline (the "glue").
What it does:
Takes a posted Task, filters and ranks runners, offers the task to exactly one
runner at a time, and escalates down the ranking on decline or timeout until
someone accepts or the pool is exhausted (task cancelled with a reason).

State machine:
    pending --offer--> offer_pending(r) --accept--> accepted
                            |  decline / 60s timeout
                            v
                        pending --offer--> offer_pending(next) ... --> cancelled

Every write is a compare-and-set against the task as it was read, so two
processes escalating the same task can never both hand it to a runner.
Timeouts are checked lazily on every read of a task; the sweeper in
dispatch.sweeper only makes those reads happen on a schedule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from errands.models import CancelReason, Offer, Task, TaskStatus
from notifications.base import CallerNotifier
from runners.eligibility import filter_eligible_runners
from runners.policy import AssignmentPolicy, default_assignment_policy
from storage.base import RunnerDirectory, TaskStore

from .errors import (
    AssignmentError,
    ConcurrentModification,
    DispatchFailure,
    NoEligibleRunners,
    NoOriginLocation,
    OfferExpired,
    OfferNotActive,
    TaskStateException,
)
from .notifier import NotificationDispatcher
from .ranking import rank_runners
from .state_machines.task_state import (
    accept_offer,
    cancel_task,
    is_offer_expired,
    offer_to_runner,
    release_offer,
    rollback_offer,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OutcomeKind(str, Enum):
    OFFERED = "offered"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    PENDING = "pending"  # unassigned, another writer is mid-escalation


@dataclass(frozen=True)
class AssignmentOutcome:
    """
    What an engine call left the task in. Callers use `kind` to tell
    "runner notified" from "posted but nobody available".
    """
    task: Task
    kind: OutcomeKind

    @property
    def task_id(self) -> str:
        return self.task.id

    @property
    def runner_id(self) -> Optional[str]:
        if self.kind == OutcomeKind.ACCEPTED:
            return self.task.accepted_runner
        return self.task.assigned_runner

    @property
    def cancel_reason(self) -> Optional[CancelReason]:
        return self.task.cancel_reason

    @classmethod
    def from_task(cls, task: Task) -> AssignmentOutcome:
        if task.status == TaskStatus.OFFER_PENDING:
            kind = OutcomeKind.OFFERED
        elif task.status in (TaskStatus.ACCEPTED, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED):
            kind = OutcomeKind.ACCEPTED
        elif task.status == TaskStatus.CANCELLED:
            kind = OutcomeKind.CANCELLED
        else:
            kind = OutcomeKind.PENDING
        return cls(task=task, kind=kind)

    def raise_for_cancellation(self) -> None:
        """
        For callers that prefer exceptions: raise NoOriginLocation or
        NoEligibleRunners when the task ended without a runner.
        """
        if self.kind != OutcomeKind.CANCELLED or self.cancel_reason is None:
            return
        if self.cancel_reason == CancelReason.NO_ORIGIN_LOCATION:
            raise NoOriginLocation(self.task_id, f"Task {self.task_id} has no origin location")
        if self.cancel_reason.is_no_runner:
            raise NoEligibleRunners(self.task_id, f"No runner available for task {self.task_id} ({self.cancel_reason.value})")


class AssignmentEngine:
    """
    Coordinates the hand-off of a Task to a single Runner at a time.
    """

    def __init__(
        self,
        task_store: TaskStore,
        runner_directory: RunnerDirectory,
        dispatcher: NotificationDispatcher,
        caller_notifier: Optional[CallerNotifier] = None,
        policy: Optional[AssignmentPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.task_store = task_store
        self.runner_directory = runner_directory
        self.dispatcher = dispatcher
        self.caller_notifier = caller_notifier
        self.policy = policy or default_assignment_policy()
        self.clock = clock

    # --- Public API ---

    def assign_new_task(self, task_id: str, now: Optional[datetime] = None) -> AssignmentOutcome:
        """
        Create transition: offer a pending task to the best runner, or cancel it.

        Idempotent: a task that already has an offer (or is finished) is left
        alone apart from the lazy timeout check. Also used to re-rank a task
        whose previous offer was rolled back after a DispatchFailure.
        """
        now = now or self.clock()
        task = self.task_store.get_task(task_id)

        if task.status != TaskStatus.PENDING:
            logger.info("Task %s is already %s, nothing to assign", task.id, task.status.value)
            return self._settle(task, now)

        return self._offer_next(task, now)

    def decline(self, task_id: str, runner_id: str, now: Optional[datetime] = None) -> AssignmentOutcome:
        """
        Runner explicitly turns the offer down; escalate to the next runner.
        """
        now = now or self.clock()
        task = self.task_store.get_task(task_id)

        if task.status != TaskStatus.OFFER_PENDING or task.assigned_runner != runner_id:
            if runner_id in task.declined_runner_ids:
                # Repeated decline from the same runner
                return AssignmentOutcome.from_task(task)
            raise OfferNotActive(task.id, runner_id)

        timed_out = is_offer_expired(task, now, self.policy.decision_window_seconds)
        logger.info("Runner %s declined task %s%s", runner_id, task.id, " (after expiry)" if timed_out else "")
        return self._release_and_escalate(task, runner_id, now, timed_out=timed_out)

    def check_timeout(self, task_id: str, now: Optional[datetime] = None) -> AssignmentOutcome:
        """
        Lazy timeout: escalate if the current offer has run out its window.
        """
        now = now or self.clock()
        return self._settle(self.task_store.get_task(task_id), now)

    def accept(self, task_id: str, runner_id: str, now: Optional[datetime] = None) -> AssignmentOutcome:
        """
        Race Condition Resolver: called when a runner hits "Accept".

        Wins only if the runner still holds an unexpired offer AND the
        compare-and-set lands. Expiry always beats a late accept.
        """
        now = now or self.clock()
        task = self.task_store.get_task(task_id)

        if runner_id in task.timed_out_runner_ids:
            raise OfferExpired(task.id, runner_id)

        if task.status == TaskStatus.ACCEPTED and task.accepted_runner == runner_id:
            return AssignmentOutcome.from_task(task)

        if task.status != TaskStatus.OFFER_PENDING or task.assigned_runner != runner_id:
            raise OfferNotActive(task.id, runner_id)

        if is_offer_expired(task, now, self.policy.decision_window_seconds):
            logger.info("Rejecting late accept of task %s by runner %s", task.id, runner_id)
            try:
                self._release_and_escalate(task, runner_id, now, timed_out=True)
            except AssignmentError as exc:
                # The task is left pending; the sweeper re-ranks it
                logger.warning("Escalation of task %s after late accept failed: %s", task.id, exc)
                raise OfferExpired(task.id, runner_id) from exc
            raise OfferExpired(task.id, runner_id)

        accepted = accept_offer(task, runner_id)
        if not self.task_store.compare_and_set(task, accepted):
            current = self.task_store.get_task(task_id)
            if runner_id in current.timed_out_runner_ids:
                raise OfferExpired(task.id, runner_id)
            if current.status == TaskStatus.ACCEPTED and current.accepted_runner == runner_id:
                return AssignmentOutcome.from_task(current)
            raise OfferNotActive(task.id, runner_id)

        accepted = replace(accepted, version=task.version + 1)
        logger.info("Runner %s accepted task %s", runner_id, task.id)
        self._finalized(accepted)
        return AssignmentOutcome.from_task(accepted)

    def cancel_by_caller(self, task_id: str, now: Optional[datetime] = None) -> AssignmentOutcome:
        """
        Ordinary user-initiated cancellation, distinguishable from the
        no-runner reasons.
        """
        task = self.task_store.get_task(task_id)

        if not task.status.is_open:
            if task.status == TaskStatus.CANCELLED:
                return AssignmentOutcome.from_task(task)
            raise TaskStateException(task.id, f"Cannot cancel task {task.id} from {task.status.value}")

        return self._cancel(task, CancelReason.CALLER_CANCELLED)

    def pending_offers_for(self, runner_id: str, now: Optional[datetime] = None) -> List[Offer]:
        """
        Live offers held by `runner_id`. Every expired offer seen on the way is
        escalated first, which is what lets the next runner see it.

        A failed escalation of some other task is logged and skipped; it does
        not hide this runner's offers.
        """
        now = now or self.clock()
        offers: List[Offer] = []

        for task in self.task_store.list_tasks_by_status(TaskStatus.OFFER_PENDING):
            try:
                outcome = self._settle(task, now)
            except AssignmentError as exc:
                logger.error("Could not settle task %s while listing offers for runner %s: %s",
                             task.id, runner_id, exc)
                continue
            if outcome.kind == OutcomeKind.OFFERED and outcome.runner_id == runner_id:
                offer = outcome.task.offer(self.policy.decision_window_seconds)
                if offer is not None and not offer.is_expired(now):
                    offers.append(offer)

        return offers

    # --- Transition helpers ---

    def _settle(self, task: Task, now: datetime) -> AssignmentOutcome:
        if is_offer_expired(task, now, self.policy.decision_window_seconds):
            logger.info("Offer of task %s to runner %s expired", task.id, task.assigned_runner)
            return self._release_and_escalate(task, task.assigned_runner, now, timed_out=True)
        return AssignmentOutcome.from_task(task)

    def _offer_next(self, task: Task, now: datetime) -> AssignmentOutcome:
        if task.origin is None:
            return self._cancel(task, CancelReason.NO_ORIGIN_LOCATION)

        candidates = filter_eligible_runners(
            task,
            self.runner_directory.list_online_runners(),
            now=now,
            policy=self.policy,
        )
        ranked = rank_runners(task, candidates, self.runner_directory.completed_categories)

        if not ranked:
            return self._cancel(task, CancelReason.NO_ELIGIBLE_RUNNERS)

        top = ranked[0]
        offered = offer_to_runner(task, top.runner_id, now)
        if not self.task_store.compare_and_set(task, offered):
            return self._resolve_conflict(task)

        offered = replace(offered, version=task.version + 1)
        logger.info(
            "Offered task %s to runner %s (affinity=%d, %.1fm, %d candidates)",
            task.id, top.runner_id, top.affinity, top.distance_m, len(ranked),
        )
        return self._deliver(offered, top.runner_id)

    def _deliver(self, offered: Task, runner_id: str) -> AssignmentOutcome:
        try:
            confirmation = self.dispatcher.notify(offered, runner_id)
        except DispatchFailure:
            self._rollback(offered, runner_id)
            raise

        if confirmation.cancelled:
            current = self.task_store.get_task(offered.id)
            if current.status == TaskStatus.CANCELLED:
                self._finalized(current)
                return AssignmentOutcome.from_task(current)
            if not current.status.is_open:
                return AssignmentOutcome.from_task(current)
            logger.info("Delivery reported %s for task %s", confirmation.status.value, offered.id)
            return self._cancel(current, confirmation.cancel_reason)

        return AssignmentOutcome.from_task(offered)

    def _release_and_escalate(self, task: Task, runner_id: str, now: datetime, *, timed_out: bool) -> AssignmentOutcome:
        released = release_offer(task, runner_id, timed_out=timed_out)
        if not self.task_store.compare_and_set(task, released):
            return self._resolve_conflict(task)

        released = replace(released, version=task.version + 1)
        return self._offer_next(released, now)

    def _rollback(self, offered: Task, runner_id: str) -> None:
        rolled_back = rollback_offer(offered, runner_id)
        if self.task_store.compare_and_set(offered, rolled_back):
            logger.warning("Rolled back offer of task %s to runner %s after delivery failure", offered.id, runner_id)
        else:
            logger.warning("Could not roll back offer of task %s: task changed concurrently", offered.id)

    def _cancel(self, task: Task, reason: CancelReason) -> AssignmentOutcome:
        cancelled = cancel_task(task, reason)
        if not self.task_store.compare_and_set(task, cancelled):
            return self._resolve_conflict(task)

        cancelled = replace(cancelled, version=task.version + 1)
        logger.info("Cancelled task %s (%s)", task.id, reason.value)
        self._finalized(cancelled)
        return AssignmentOutcome.from_task(cancelled)

    def _resolve_conflict(self, expected: Task) -> AssignmentOutcome:
        """
        A compare-and-set lost. If the task has moved on from what we read
        (different status or holder), another writer already handled this
        step and the call is a no-op. If it still looks the same, we cannot
        tell what happened and the caller must retry.
        """
        current = self.task_store.get_task(expected.id)

        if current.status == expected.status and current.assigned_runner == expected.assigned_runner:
            raise ConcurrentModification(
                expected.id,
                f"Task {expected.id} changed concurrently (version {expected.version} -> {current.version})",
            )

        logger.warning(
            "Task %s already moved from %s to %s, treating as handled",
            expected.id, expected.status.value, current.status.value,
        )
        return AssignmentOutcome.from_task(current)

    def _finalized(self, task: Task) -> None:
        if self.caller_notifier is not None:
            self.caller_notifier.task_finalized(task)
