"""
Purpose: The optional "heartbeat" for offer timeouts.
What it does:
Every `sweep_interval_seconds`:
1. reads up to `sweep_batch_limit` tasks that hold a pending offer and runs the
   engine's lazy timeout check on each, so an offer nobody looks at still
   escalates after its decision window;
2. re-ranks stranded tasks: pending tasks that already went through an offer
   (escalation_attempts > 0) or have waited a full decision window. These are
   left behind when an escalation's delivery failed twice.

Rule: the sweeper owns no transitions. Every change goes through the engine.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from errands.models import Task, TaskStatus
from runners.policy import AssignmentPolicy

from .engine import AssignmentEngine, AssignmentOutcome, OutcomeKind
from .errors import AssignmentError

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    checked: int = 0
    escalated: List[AssignmentOutcome] = field(default_factory=list)
    cancelled: List[AssignmentOutcome] = field(default_factory=list)
    reoffered: List[AssignmentOutcome] = field(default_factory=list)
    errors: List[AssignmentError] = field(default_factory=list)


class OfferTimeoutSweeper:
    """
    Periodic driver of AssignmentEngine.check_timeout / assign_new_task.
    """

    def __init__(self, engine: AssignmentEngine, policy: Optional[AssignmentPolicy] = None):
        self.engine = engine
        self.policy = policy or engine.policy
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def is_stranded(self, task: Task, now: datetime) -> bool:
        """
        A pending task nobody is going to pick up on their own.
        Freshly posted tasks are left to the caller's assign_new_task.
        """
        if task.status != TaskStatus.PENDING:
            return False
        if task.escalation_attempts > 0:
            return True
        return now - task.created_at >= timedelta(seconds=self.policy.decision_window_seconds)

    def run_cycle(self, now: Optional[datetime] = None) -> SweepReport:
        """
        1. Reads the oldest OFFER_PENDING tasks and the stranded PENDING tasks
           (each bounded by the batch limit), both before touching anything,
           so a task rolled back in this cycle waits for the next one.
        2. Lets the engine settle each offer at `now` and re-rank each
           stranded task.
        3. Sorts what happened into escalated / cancelled / reoffered / errors.

        One task failing does not stop the cycle; its error is logged and
        returned in the report.
        """
        now = now or self.engine.clock()
        report = SweepReport()
        task_store = self.engine.task_store

        offered = task_store.list_tasks_by_status(TaskStatus.OFFER_PENDING, limit=self.policy.sweep_batch_limit)
        stranded = [
            task for task in task_store.list_tasks_by_status(TaskStatus.PENDING)
            if self.is_stranded(task, now)
        ][: self.policy.sweep_batch_limit]

        for task in offered:
            report.checked += 1
            try:
                outcome = self.engine.check_timeout(task.id, now=now)
            except AssignmentError as exc:
                logger.error("Timeout sweep failed for task %s: %s", task.id, exc)
                report.errors.append(exc)
                continue

            if outcome.kind == OutcomeKind.CANCELLED:
                report.cancelled.append(outcome)
            elif outcome.task.version != task.version:
                report.escalated.append(outcome)

        for task in stranded:
            try:
                outcome = self.engine.assign_new_task(task.id, now=now)
            except AssignmentError as exc:
                logger.error("Re-ranking stranded task %s failed: %s", task.id, exc)
                report.errors.append(exc)
                continue

            if outcome.kind == OutcomeKind.CANCELLED:
                report.cancelled.append(outcome)
            elif outcome.kind == OutcomeKind.OFFERED:
                report.reoffered.append(outcome)

        if report.escalated or report.cancelled or report.reoffered or report.errors:
            logger.info(
                "Timeout sweep: checked=%d escalated=%d cancelled=%d reoffered=%d errors=%d",
                report.checked, len(report.escalated), len(report.cancelled),
                len(report.reoffered), len(report.errors),
            )
        return report

    # --- Background loop ---

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="offer-timeout-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_cycle()
            except Exception:
                # Store outages and the like: log and try again next interval
                logger.exception("Timeout sweep cycle crashed")
            self._stop.wait(self.policy.sweep_interval_seconds)
