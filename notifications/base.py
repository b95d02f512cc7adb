"""
Purpose: Interfaces of the notification collaborators.
What it does:
- DeliveryClient: pushes an offer for (task_id, runner_id) to the runner and
  answers with a status string.
- CallerNotifier: told about terminal outcomes (accepted / cancelled + reason)
  so the caller's app can show them.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

from errands.models import CancelReason, Task


class DeliveryError(Exception):
    """Raised by a DeliveryClient when the delivery call itself failed."""
    pass


class DeliveryStatus(str, Enum):
    ASSIGNED = "assigned"
    ALREADY_ASSIGNED = "already_assigned"
    NO_ELIGIBLE_RUNNERS = "no_eligible_runners"
    NO_RUNNERS_WITHIN_DISTANCE = "no_runners_within_distance"
    NO_RUNNER_TO_ASSIGN = "no_runner_to_assign"

    @classmethod
    def parse(cls, raw: object) -> Optional[DeliveryStatus]:
        """The matching status, or None for anything unrecognized."""
        try:
            return cls(raw)
        except ValueError:
            return None

    @property
    def is_success(self) -> bool:
        return self in (DeliveryStatus.ASSIGNED, DeliveryStatus.ALREADY_ASSIGNED)

    @property
    def cancel_reason(self) -> Optional[CancelReason]:
        """Cancellation statuses map 1:1 onto cancel reasons."""
        if self.is_success:
            return None
        return CancelReason(self.value)


class DeliveryClient(Protocol):
    def deliver(self, task_id: str, runner_id: str) -> str:
        """Raw status string from the delivery service. Raises DeliveryError."""
        ...


class CallerNotifier(Protocol):
    def task_finalized(self, task: Task) -> None:
        """Called once a task is ACCEPTED or CANCELLED by the engine."""
        ...
