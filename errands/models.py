"""
Purpose: Domain models for the Errands capability.
What it does:
- Defines core data structures:
- Task (id, title, categories, origin, status, offer bookkeeping, version)
- Offer (derived view of the one runner currently holding a task)

Defines enums/constants:
- TaskStatus = pending | offer_pending | accepted | in_progress | completed | cancelled
- CancelReason = why a task was cancelled (no runner reasons vs caller cancel)

Rule: No storage calls, no ranking logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple, Union
import uuid

LatLon = Tuple[float, float]


class TaskStatus(str, Enum):
    PENDING = "pending"
    OFFER_PENDING = "offer_pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_open(self) -> bool:
        """Still owned by the assignment engine."""
        return self in (TaskStatus.PENDING, TaskStatus.OFFER_PENDING)


class CancelReason(str, Enum):
    # Reason codes shared with the delivery collaborator's wire statuses
    NO_ORIGIN_LOCATION = "no_origin_location"
    NO_ELIGIBLE_RUNNERS = "no_eligible_runners"
    NO_RUNNERS_WITHIN_DISTANCE = "no_runners_within_distance"
    NO_RUNNER_TO_ASSIGN = "no_runner_to_assign"
    CALLER_CANCELLED = "caller_cancelled"

    @property
    def is_no_runner(self) -> bool:
        return self is not CancelReason.CALLER_CANCELLED


def parse_categories(raw: Union[str, Iterable[str], None]) -> FrozenSet[str]:
    """
    Normalize category tags: "Print, Food ," -> {"print", "food"}.
    Accepts the comma separated text the apps store, or any iterable of tags.
    """
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        raw = raw.split(",")
    return frozenset(tag.strip().lower() for tag in raw if tag and tag.strip())


@dataclass(frozen=True)
class Offer:
    """
    The single runner currently holding a task, pending their decision.
    Not persisted; derived from Task.assigned_runner / assigned_at.
    """
    task_id: str
    runner_id: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class Task:
    """
    An errand/commission posted by a caller.

    Immutable: every transition produces a new Task (see
    dispatch.state_machines.task_state). `version` is bumped by the store on
    every successful compare-and-set.
    """

    id: str
    title: str
    caller_id: Optional[str] = None
    categories: FrozenSet[str] = frozenset()
    origin: Optional[LatLon] = None

    status: TaskStatus = TaskStatus.PENDING

    #offer bookkeeping
    assigned_runner: Optional[str] = None
    assigned_at: Optional[datetime] = None
    declined_runner_ids: FrozenSet[str] = frozenset()
    timed_out_runner_ids: FrozenSet[str] = frozenset()
    escalation_attempts: int = 0

    #terminal outcome
    accepted_runner: Optional[str] = None
    cancel_reason: Optional[CancelReason] = None

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 0

    def offer(self, decision_window_seconds: float) -> Optional[Offer]:
        """
        The live offer view, or None when nobody holds the task.
        """
        if self.status != TaskStatus.OFFER_PENDING or self.assigned_runner is None or self.assigned_at is None:
            return None
        return Offer(
            task_id=self.id,
            runner_id=self.assigned_runner,
            issued_at=self.assigned_at,
            expires_at=self.assigned_at + timedelta(seconds=decision_window_seconds),
        )

    @staticmethod # Factory method for a freshly posted task
    def new(
        title: str,
        *,
        caller_id: Optional[str] = None,
        categories: Union[str, Iterable[str], None] = None,
        origin: Optional[LatLon] = None,
        task_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Task:
        #uuid for unique task id generation
        return Task(
            id=task_id or str(uuid.uuid4()),
            title=title,
            caller_id=caller_id,
            categories=parse_categories(categories),
            origin=origin,
            created_at=created_at or datetime.now(timezone.utc),
        )
