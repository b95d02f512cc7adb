#Purpose: Ranking/selection model (the "who is best" layer).
#Takes candidates (already eligible) + features (affinity, distance)
#Produces:
#an ordered list, best first
#Sort key, strict priority:
#1. affinity: how many of the runner's completed tasks share a category with this one (desc)
#2. distance to the task origin (asc)
#3. runner id (asc), so equal runners always come out in the same order
#No randomization, no load-balancing weights.

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Sequence

from errands.models import Task
from runners.eligibility import RunnerCandidate

# Provide a function returning one category set per completed task of a runner.
CompletedCategoriesLookup = Callable[[str], Sequence[FrozenSet[str]]]


@dataclass(frozen=True)
class RankedRunner:
    """
    A candidate with the features it was ranked on.
    """
    runner_id: str
    affinity: int
    distance_m: float

    def sort_key(self):
        return (-self.affinity, self.distance_m, self.runner_id)


def affinity_score(task_categories: FrozenSet[str], completed: Iterable[FrozenSet[str]]) -> int:
    """
    Count of completed tasks whose category set intersects the task's.
    A task with no categories scores 0 for everybody.
    """
    if not task_categories:
        return 0
    return sum(1 for categories in completed if task_categories & categories)


def rank_runners(
    task: Task,
    candidates: Sequence[RunnerCandidate],
    completed_categories: CompletedCategoriesLookup,
) -> List[RankedRunner]:
    """
    Orders eligible runners for the offer sequence.

    History is looked up fresh for every call; nothing is cached between
    rankings. When the task has no categories the lookup is skipped entirely.
    """
    ranked: List[RankedRunner] = []

    for candidate in candidates:
        affinity = 0
        if task.categories:
            affinity = affinity_score(task.categories, completed_categories(candidate.runner_id))

        ranked.append(
            RankedRunner(
                runner_id=candidate.runner_id,
                affinity=affinity,
                distance_m=candidate.distance_m,
            )
        )

    ranked.sort(key=RankedRunner.sort_key)
    return ranked
