"""
Purpose: Hard eligibility gates for offering a task to a runner.
What it does:
Accepts a Task and a pool of runners and keeps only the ones that pass every
rule gate, attaching the distance to the task origin for the ranking layer.

Gates (all hard, none degrade to a lower rank):
- online
- location present and fresh
- task has an origin location
- within the service radius (inclusive, exact)
- not already declined / timed out on this task

Output: "rule-qualified runners" (still not ranked).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from errands.models import Task
from geo.distance import haversine_meters

from .models import Runner
from .policy import AssignmentPolicy, default_assignment_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunnerCandidate:
    """
    A runner that passed every gate, plus its distance to the task origin.
    This is what the ranking layer consumes as input.
    """
    runner: Runner
    distance_m: float

    @property
    def runner_id(self) -> str:
        return self.runner.id


def is_location_fresh(runner: Runner, now: datetime, freshness_seconds: float) -> bool:
    if runner.location is None or runner.location_updated_at is None:
        return False
    age_seconds = (now - runner.location_updated_at).total_seconds()
    return age_seconds <= freshness_seconds


def filter_eligible_runners(
    task: Task,
    runners: Iterable[Runner],
    *,
    now: Optional[datetime] = None,
    policy: Optional[AssignmentPolicy] = None,
) -> List[RunnerCandidate]:
    """
    Returns the runners allowed to see an offer for `task`, in input order.

    A task without an origin never matches anyone: the result is empty and the
    engine cancels the task.
    """
    policy = policy or default_assignment_policy()
    now = now or datetime.now(timezone.utc)

    if task.origin is None:
        logger.info("Task %s has no origin location, no runner is eligible", task.id)
        return []

    origin_lat, origin_lon = task.origin
    eligible: List[RunnerCandidate] = []

    for runner in runners:
        if not runner.is_online:
            logger.debug("Task %s: skip runner %s (offline)", task.id, runner.id)
            continue

        if runner.id in task.declined_runner_ids:
            logger.debug("Task %s: skip runner %s (already declined)", task.id, runner.id)
            continue

        if not is_location_fresh(runner, now, policy.location_freshness_seconds):
            logger.debug("Task %s: skip runner %s (stale or missing location)", task.id, runner.id)
            continue

        runner_lat, runner_lon = runner.location
        distance_m = haversine_meters(runner_lat, runner_lon, origin_lat, origin_lon)

        if distance_m > policy.service_radius_meters:
            logger.debug("Task %s: skip runner %s (%.1fm away)", task.id, runner.id, distance_m)
            continue

        eligible.append(RunnerCandidate(runner=runner, distance_m=distance_m))

    return eligible
